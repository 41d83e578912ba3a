"""
Shared pytest fixtures for SmartMark tests.

- In-memory SQLite record store
- Bookmark factory
- Fake HTTP responses for provider clients
"""

import datetime
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from smartmark.db.db_connector import DBConnector  # noqa: E402
from smartmark.models import Bookmark  # noqa: E402

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: requires external services (database, provider APIs)"
    )


# =============================================================================
# RECORD STORE
# =============================================================================

@pytest.fixture
def store():
    connector = DBConnector("sqlite://")
    connector.create_schema()
    yield connector
    connector.engine.dispose()


@pytest.fixture
def make_bookmark():
    """Factory with increasing created_at so ordering is deterministic."""
    base = datetime.datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "url": f"https://example.com/{counter['n']}",
            "title": f"Example {counter['n']}",
            "user_id": USER_ID,
            "created_at": base + datetime.timedelta(minutes=counter["n"]),
        }
        values.update(overrides)
        return Bookmark(**values)

    return _make


# =============================================================================
# HTTP RESPONSES
# =============================================================================

def fake_response(status_code=200, json_data=None, text="", headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


def chat_completion(content):
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 50, "completion_tokens": 20, "total_tokens": 70},
    }


@pytest.fixture
def classification_json():
    return (
        '{"category": "Technology", "subcategory": "AI", '
        '"description": "A site about machine learning."}'
    )
