from __future__ import annotations

import os
from typing import Any, Optional

from smartmark.config.constants import (
    GEMINI_DEFAULT_MODEL,
    GEMINI_ENDPOINT,
    GEMINI_MIN_INTERVAL_MS,
)
from smartmark.config.exceptions import AuthMissingError, MalformedResponseError
from smartmark.services.llm.base_client import BaseClassifierClient
from smartmark.services.llm.rate_limiter import RateLimiter
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


class GeminiClient(BaseClassifierClient):
    """Google Gemini generateContent endpoint.

    Free-tier quotas are tight, so requests are spaced by a per-client
    RateLimiter (2s by default).
    """

    provider = "gemini"

    def __init__(self, api_key: str, model: str = GEMINI_DEFAULT_MODEL, **kwargs: Any) -> None:
        kwargs.setdefault("rate_limiter", RateLimiter(GEMINI_MIN_INTERVAL_MS))
        super().__init__(**kwargs)
        self.api_key = api_key
        self.model = model
        self.endpoint = GEMINI_ENDPOINT.format(model=model)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "GeminiClient":
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise AuthMissingError("GEMINI_API_KEY not configured")
        return cls(api_key, os.getenv("GEMINI_MODEL", GEMINI_DEFAULT_MODEL), **kwargs)

    def complete(self, prompt: str) -> str:
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        data = self._post(self.endpoint, payload, params={"key": self.api_key})

        candidates = data.get("candidates")
        if not isinstance(candidates, list):
            raise MalformedResponseError("gemini response missing 'candidates'")
        if not candidates:
            return ""
        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise MalformedResponseError("gemini candidate is not an object")
        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise MalformedResponseError("gemini content is not an object")
        parts = content.get("parts") or []
        if not isinstance(parts, list) or (parts and not isinstance(parts[0], dict)):
            raise MalformedResponseError("gemini content parts are malformed")
        text: Optional[str] = parts[0].get("text") if parts else None
        if text is not None and not isinstance(text, str):
            raise MalformedResponseError(
                f"gemini text is {type(text).__name__}, expected text"
            )
        return text or ""


__all__ = ["GeminiClient"]
