"""
Tests for data_operations.py - search, grouping, insights and JSON output
"""

import pandas as pd
import pytest

from smartmark.helpers.data_operations import (
    JsonManager,
    bookmarks_to_frame,
    category_insights,
    group_by_category,
    search_bookmarks,
)


@pytest.fixture
def frame(make_bookmark):
    return bookmarks_to_frame([
        make_bookmark(title="FastAPI docs", category="Technology", subcategory="Web"),
        make_bookmark(title="Pandas guide", category="Technology", subcategory="Data"),
        make_bookmark(title="Dribbble", category="Design", subcategory="Web",
                      description="Design inspiration"),
        make_bookmark(title="Untitled", category=None, subcategory=None),
        make_bookmark(title="Old link"),
        make_bookmark(title="Blank", category="", subcategory=""),
        make_bookmark(title="Sourdough", category="Cooking", subcategory="Baking",
                      url="https://bread.example.org"),
    ])


class TestSearch:

    def test_matches_across_columns_case_insensitive(self, frame):
        assert list(search_bookmarks(frame, "DESIGN")["title"]) == ["Dribbble"]
        assert list(search_bookmarks(frame, "bread.example")["title"]) == ["Sourdough"]
        assert len(search_bookmarks(frame, "technology")) == 2

    def test_blank_query_returns_everything(self, frame):
        assert len(search_bookmarks(frame, "   ")) == len(frame)

    def test_regex_characters_are_literal(self, frame):
        assert search_bookmarks(frame, "(.*)").empty


class TestGroupByCategory:

    def test_groups_sorted_and_missing_become_uncategorized(self, frame):
        groups = group_by_category(frame)
        assert list(groups) == ["Cooking", "Design", "Technology", "Uncategorized"]
        assert len(groups["Technology"]) == 2
        assert set(groups["Uncategorized"]["title"]) == {"Untitled", "Old link", "Blank"}

    def test_empty(self):
        assert group_by_category(bookmarks_to_frame([])) == {}


class TestCategoryInsights:

    def test_counts_and_coverage(self, frame):
        stats = category_insights(frame)

        assert stats["total"] == 7
        assert stats["unclassified"] == 3
        assert stats["classified"] == 4
        assert stats["coverage_pct"] == pytest.approx(57.14)
        assert stats["categories"][0] == {"name": "Technology", "count": 2, "pct": 28.57}
        assert stats["top_subcategories"][0] == {"name": "Web", "count": 2}
        assert stats["unexpected_values"] == ["Cooking"]

    def test_top_n(self, frame):
        assert len(category_insights(frame, top_n=1)["top_subcategories"]) == 1

    def test_custom_expected_options(self, frame):
        stats = category_insights(frame, expected_options=["Technology"])
        assert stats["unexpected_values"] == ["Cooking", "Design", "Uncategorized"]

    def test_empty_frame(self):
        stats = category_insights(bookmarks_to_frame([]))
        assert stats["total"] == 0
        assert stats["coverage_pct"] == 0.0
        assert stats["categories"] == []


class TestJsonManager:

    def test_write_and_load_list(self, tmp_path, make_bookmark):
        jm = JsonManager()
        target = tmp_path / "nested" / "out.json"
        b = make_bookmark()

        jm.write(target, [{"id": b.id, "created_at": b.created_at}])

        loaded = jm.load(target)
        assert loaded[0]["id"] == b.id
        assert loaded[0]["created_at"] == str(b.created_at)
        assert not target.with_suffix(".json.tmp").exists()

    def test_write_dataframe(self, tmp_path):
        jm = JsonManager()
        target = tmp_path / "frame.json"
        jm.write(target, pd.DataFrame([{"a": 1, "b": None}]))
        assert jm.load(target) == [{"a": 1, "b": None}]

    def test_load_missing_or_corrupt(self, tmp_path):
        jm = JsonManager()
        assert jm.load(tmp_path / "nope.json") is None
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        assert jm.load(bad) is None
