from __future__ import annotations

import os
from typing import Any, Optional

from smartmark.config.constants import CHAT_PROVIDERS, DEFAULT_PROVIDER
from smartmark.config.exceptions import AuthMissingError, ConfigurationError
from smartmark.services.llm.azure_client import AzureClient
from smartmark.services.llm.base_client import BaseClassifierClient
from smartmark.services.llm.chat_client import ChatCompletionsClient
from smartmark.services.llm.gemini_client import GeminiClient
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = sorted([*CHAT_PROVIDERS, "gemini", "azure"])


def build_classifier(provider: Optional[str] = None, **kwargs: Any) -> BaseClassifierClient:
    """Construct the classifier selected by CLASSIFIER_PROVIDER (default: groq).

    Raises:
        ConfigurationError: unknown provider.
        AuthMissingError: provider credentials are not configured.
    """
    name = (provider or os.getenv("CLASSIFIER_PROVIDER") or DEFAULT_PROVIDER).strip().lower()

    if name in CHAT_PROVIDERS:
        client: BaseClassifierClient = ChatCompletionsClient.from_env(name, **kwargs)
    elif name == "gemini":
        client = GeminiClient.from_env(**kwargs)
    elif name == "azure":
        azure = AzureClient.from_env(**kwargs)
        if azure is None:
            raise AuthMissingError("Azure OpenAI not configured (missing env vars)")
        client = azure
    else:
        raise ConfigurationError(
            f"Unknown classifier provider '{name}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    logger.info("Classifier initialized: provider=%s", client.provider)
    return client


__all__ = ["build_classifier", "SUPPORTED_PROVIDERS"]
