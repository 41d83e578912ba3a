"""
Tests for db_connector.py against in-memory SQLite.
"""

import pytest

from conftest import OTHER_USER_ID, USER_ID
from smartmark.config.exceptions import ConfigurationError, RecordStoreError
from smartmark.db.db_connector import DBConnector
from smartmark.models import Bookmark, ClassificationResult


def _result(**kw):
    values = {"category": "Design", "subcategory": "Typography", "description": "Fonts"}
    values.update(kw)
    return ClassificationResult(**values)


class TestSelection:

    def test_fetch_unclassified_matches_null_and_sentinel(self, store, make_bookmark):
        a = store.insert_bookmark(make_bookmark(category=None))
        b = store.insert_bookmark(make_bookmark(category="Uncategorized"))
        store.insert_bookmark(make_bookmark(category="Technology"))
        store.insert_bookmark(make_bookmark(category=None, user_id=OTHER_USER_ID))

        rows = store.fetch_unclassified(USER_ID)

        assert [r.id for r in rows] == [a.id, b.id]
        assert store.count_unclassified(USER_ID) == 2

    def test_fetch_unclassified_is_oldest_first_and_limited(self, store, make_bookmark):
        ids = [store.insert_bookmark(make_bookmark()).id for _ in range(4)]
        rows = store.fetch_unclassified(USER_ID, limit=3)
        assert [r.id for r in rows] == ids[:3]

    def test_fetch_bookmarks_newest_first(self, store, make_bookmark):
        ids = [store.insert_bookmark(make_bookmark()).id for _ in range(3)]
        assert [b.id for b in store.fetch_bookmarks(USER_ID)] == list(reversed(ids))

    def test_get_bookmark_scoped_to_owner(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark())
        assert store.get_bookmark(USER_ID, b.id).url == b.url
        assert store.get_bookmark(OTHER_USER_ID, b.id) is None


class TestUpdateClassification:

    def test_sets_category_and_fills_missing_description(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark(description=None))
        assert store.update_classification(USER_ID, b.id, _result()) is True

        row = store.get_bookmark(USER_ID, b.id)
        assert (row.category, row.subcategory, row.description) == ("Design", "Typography", "Fonts")
        assert not row.is_unclassified

    def test_empty_description_is_filled(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark(description=""))
        store.update_classification(USER_ID, b.id, _result())
        assert store.get_bookmark(USER_ID, b.id).description == "Fonts"

    def test_existing_description_is_kept(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark(description="My own notes on this"))
        store.update_classification(USER_ID, b.id, _result())
        assert store.get_bookmark(USER_ID, b.id).description == "My own notes on this"

    def test_other_owner_not_updated(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark())
        assert store.update_classification(OTHER_USER_ID, b.id, _result()) is False
        assert store.get_bookmark(USER_ID, b.id).category == "Uncategorized"

    def test_already_classified_row_left_alone(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark(category="Business"))
        assert store.update_classification(USER_ID, b.id, _result()) is False
        assert store.get_bookmark(USER_ID, b.id).category == "Business"

    def test_force_update_of_classified_row(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark(category="Business"))
        assert store.update_classification(USER_ID, b.id, _result(), only_unclassified=False) is True
        assert store.get_bookmark(USER_ID, b.id).category == "Design"

    def test_unknown_id(self, store):
        assert store.update_classification(USER_ID, "missing", _result()) is False


class TestMisc:

    def test_delete(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark())
        assert store.delete_bookmark(USER_ID, b.id) is True
        assert store.delete_bookmark(USER_ID, b.id) is False

    def test_insert_requires_owner(self, store):
        with pytest.raises(RecordStoreError):
            store.insert_bookmark(Bookmark(url="https://a.io", title="A"))

    def test_duplicate_id_raises_store_error(self, store, make_bookmark):
        b = store.insert_bookmark(make_bookmark())
        with pytest.raises(RecordStoreError):
            store.insert_bookmark(make_bookmark(id=b.id))

    def test_profiles_roundtrip_and_api_key_lookup(self, store):
        store.save_profile(USER_ID, api_key="k-123")
        store.save_profile(USER_ID, notion_token="secret", notion_database_id="db1")

        profile = store.get_profile(USER_ID)
        assert profile["api_key"] == "k-123"
        assert profile["notion_token"] == "secret"
        assert store.find_user_by_api_key("k-123") == USER_ID
        assert store.find_user_by_api_key("nope") is None
        assert store.get_profile(OTHER_USER_ID) is None

    def test_connect_and_verify(self, store):
        store.connect_and_verify()

    def test_connect_without_schema_fails(self):
        connector = DBConnector("sqlite://")
        with pytest.raises(RecordStoreError):
            connector.connect_and_verify()

    def test_missing_config_raises(self, monkeypatch):
        for var in ("DATABASE_URL", "AZURE_SQL_SERVER", "AZURE_SQL_DATABASE",
                    "AZURE_SQL_CLIENT_ID", "AZURE_SQL_CLIENT_SECRET"):
            monkeypatch.delenv(var, raising=False)
        connector = DBConnector()
        with pytest.raises(ConfigurationError):
            connector._validate_env_vars()
