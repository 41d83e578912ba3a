from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

DATA_DIR = Path("data")

# --------------- Record selection ---------------
UNCATEGORIZED = "Uncategorized"  # Sentinel for "not yet classified"
DEFAULT_SUBCATEGORY = "General"

CATEGORY_TAXONOMY = [
    "Technology",
    "Design",
    "Business",
    "Education",
    "Entertainment",
    "Productivity",
    "Research",
    UNCATEGORIZED,
]

UNCLASSIFIED_LIMIT = int(os.getenv("UNCLASSIFIED_LIMIT", "2000"))

# --------------- Bulk classification ---------------
BULK_DELAY_MS = int(os.getenv("BULK_DELAY_MS", "60"))
IMPORT_DELAY_MS = int(os.getenv("IMPORT_DELAY_MS", "200"))
GEMINI_MIN_INTERVAL_MS = 2000

# --------------- Classifier providers ---------------
DEFAULT_PROVIDER = "groq"
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "30"))

CHAT_PROVIDERS = {
    "groq": {
        "endpoint": "https://api.groq.com/openai/v1/chat/completions",
        "api_key_env": "GROQ_API_KEY",
        "model_env": "GROQ_MODEL",
        "default_model": "llama-3.1-8b-instant",
    },
    "openrouter": {
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
        "api_key_env": "OPENROUTER_API_KEY",
        "model_env": "OPENROUTER_MODEL",
        "default_model": "meta-llama/llama-3.1-8b-instruct",
    },
    "deepseek": {
        "endpoint": "https://api.deepseek.com/chat/completions",
        "api_key_env": "DEEPSEEK_API_KEY",
        "model_env": "DEEPSEEK_MODEL",
        "default_model": "deepseek-chat",
    },
}

GEMINI_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"

CLASSIFIER_SYSTEM_MESSAGE = (
    "You are a bookmark categorization assistant. Respond ONLY with valid JSON: "
    '{"category": "Main Category", "subcategory": "Specific Subcategory", '
    '"description": "Brief description"}'
)

# --------------- Bookmarks ---------------
FAVICON_URL_TEMPLATE = "https://www.google.com/s2/favicons?domain={host}&sz=64"
EXPORT_COLUMNS = [
    "title",
    "url",
    "category",
    "subcategory",
    "description",
    "notes",
    "created_at",
]
EXPORT_FORMATS = ("json", "csv")

# --------------- Notion ---------------
NOTION_PAGES_URL = "https://api.notion.com/v1/pages"
NOTION_VERSION = "2022-06-28"

DRY_RUN_DIR = DATA_DIR / "dry_run"
DRY_RUN_OUTPUT_JSON = DRY_RUN_DIR / "output.json"


def get_int_env(key: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


__all__ = [
    "DATA_DIR",
    "UNCATEGORIZED",
    "DEFAULT_SUBCATEGORY",
    "CATEGORY_TAXONOMY",
    "UNCLASSIFIED_LIMIT",
    "BULK_DELAY_MS",
    "IMPORT_DELAY_MS",
    "GEMINI_MIN_INTERVAL_MS",
    "DEFAULT_PROVIDER",
    "LLM_TIMEOUT",
    "CHAT_PROVIDERS",
    "GEMINI_ENDPOINT",
    "GEMINI_DEFAULT_MODEL",
    "CLASSIFIER_SYSTEM_MESSAGE",
    "FAVICON_URL_TEMPLATE",
    "EXPORT_COLUMNS",
    "EXPORT_FORMATS",
    "NOTION_PAGES_URL",
    "NOTION_VERSION",
    "DRY_RUN_DIR",
    "DRY_RUN_OUTPUT_JSON",
    "get_int_env",
]
