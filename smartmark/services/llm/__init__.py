"""Classifier services.

Exports:
    BaseClassifierClient: classify(url, title) -> ClassificationResult contract.
    ChatCompletionsClient: OpenAI-compatible providers (Groq, OpenRouter, DeepSeek).
    GeminiClient: Google Gemini generateContent.
    AzureClient: Azure OpenAI deployment.
    build_classifier: Provider selection from CLASSIFIER_PROVIDER.
    PromptBuilder: Categorization prompt.
    RateLimiter: Per-instance request spacing.
    run_bulk_classification: Sequential, failure-tolerant bulk loop.
"""

from .azure_client import AzureClient
from .base_client import BaseClassifierClient
from .chat_client import ChatCompletionsClient
from .classification_orchestrator import (
    BulkClassificationResult,
    BulkOptions,
    run_bulk_classification,
)
from .classifier_factory import SUPPORTED_PROVIDERS, build_classifier
from .gemini_client import GeminiClient
from .prompt_builder import PromptBuilder
from .rate_limiter import RateLimiter
from .response_parser import extract_json_object, parse_classification_response

__all__ = [
    "AzureClient",
    "BaseClassifierClient",
    "ChatCompletionsClient",
    "GeminiClient",
    "build_classifier",
    "SUPPORTED_PROVIDERS",
    "PromptBuilder",
    "RateLimiter",
    "BulkOptions",
    "BulkClassificationResult",
    "run_bulk_classification",
    "extract_json_object",
    "parse_classification_response",
]
