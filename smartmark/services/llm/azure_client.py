from __future__ import annotations

import os
from typing import Any, Optional

from smartmark.config.constants import CLASSIFIER_SYSTEM_MESSAGE
from smartmark.services.llm.base_client import BaseClassifierClient
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


class AzureClient(BaseClassifierClient):
    """Azure OpenAI client for bookmark categorization."""

    provider = "azure"

    def __init__(
        self,
        api_key: str,
        deployment: str,
        endpoint: str,
        api_version: str,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.deployment = deployment
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self.full_endpoint = (
            f"{self.endpoint}/openai/deployments/{deployment}/chat/completions"
            f"?api-version={api_version}"
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> Optional["AzureClient"]:
        api_key = os.getenv("AZURE_OPENAI_API_KEY")
        deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        api_version = os.getenv("AZURE_OPENAI_API_VERSION")
        if all([api_key, deployment, endpoint, api_version]):
            return cls(api_key, deployment, endpoint, api_version, **kwargs)  # type: ignore
        return None

    def send(self, prompt: str, *, system_message: str | None = None) -> tuple[str, dict]:
        """Send prompt to the deployment and return response with usage stats.

        Returns:
            tuple of (response_message, usage_dict)

        Raises:
            ClassifierError subclasses on transport, auth or envelope failure.
        """
        payload = {
            "messages": [
                {"role": "system", "content": system_message or CLASSIFIER_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
        }
        logger.debug("Deployment: %s, Prompt length: %d chars", self.deployment, len(prompt))
        data = self._post(self.full_endpoint, payload, headers={"api-key": self.api_key})

        message = self._chat_content(data)
        usage = data.get("usage") or {}

        if usage:
            logger.info(
                "Tokens used: %d (prompt=%d, completion=%d)",
                usage.get("total_tokens", 0),
                usage.get("prompt_tokens", 0),
                usage.get("completion_tokens", 0),
            )
        logger.debug("Response: %s...", message[:100] if message else "(empty)")
        return message, usage

    def complete(self, prompt: str) -> str:
        message, _ = self.send(prompt)
        return message


__all__ = ["AzureClient"]
