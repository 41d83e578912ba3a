from __future__ import annotations

import os
from typing import Any

from smartmark.config.constants import CHAT_PROVIDERS, CLASSIFIER_SYSTEM_MESSAGE
from smartmark.config.exceptions import AuthMissingError, ConfigurationError
from smartmark.services.llm.base_client import BaseClassifierClient
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionsClient(BaseClassifierClient):
    """OpenAI-compatible chat completions endpoint (Groq, OpenRouter, DeepSeek)."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        endpoint: str,
        model: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 200,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.provider = provider
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_env(cls, provider: str, **kwargs: Any) -> "ChatCompletionsClient":
        preset = CHAT_PROVIDERS.get(provider)
        if preset is None:
            raise ConfigurationError(f"Unknown chat provider '{provider}'")
        api_key = os.getenv(preset["api_key_env"])
        if not api_key:
            raise AuthMissingError(f"{preset['api_key_env']} not configured")
        model = os.getenv(preset["model_env"], preset["default_model"])
        return cls(provider, api_key, preset["endpoint"], model, **kwargs)

    def complete(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": CLASSIFIER_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        data = self._post(
            self.endpoint,
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        content = self._chat_content(data)

        usage = data.get("usage") or {}
        if usage:
            logger.info(
                "[%s] Tokens used: %d (prompt=%d, completion=%d)",
                self.provider,
                usage.get("total_tokens", 0),
                usage.get("prompt_tokens", 0),
                usage.get("completion_tokens", 0),
            )
        return content


__all__ = ["ChatCompletionsClient"]
