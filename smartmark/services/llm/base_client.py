"""Shared request/response handling for classifier providers.

Every provider variant exposes the same capability:

    classify(url, title) -> ClassificationResult

Subclasses only implement complete(prompt) -> str, the provider-specific
request envelope and the path to the completion text.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from smartmark.config.constants import LLM_TIMEOUT
from smartmark.config.exceptions import (
    AuthMissingError,
    MalformedResponseError,
    RateLimitedError,
    UpstreamError,
)
from smartmark.models import ClassificationResult
from smartmark.services.llm.prompt_builder import PromptBuilder
from smartmark.services.llm.rate_limiter import RateLimiter
from smartmark.services.llm.response_parser import parse_classification_response
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


def _retry_after(response: requests.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class BaseClassifierClient:
    provider = "base"

    def __init__(
        self,
        timeout: int = LLM_TIMEOUT,
        prompt_builder: Optional[PromptBuilder] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.timeout = timeout
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.rate_limiter = rate_limiter

    def complete(self, prompt: str) -> str:
        """Return the raw completion text. Subclasses must override this."""
        raise NotImplementedError

    def classify(self, url: str, title: str) -> ClassificationResult:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()
        prompt = self.prompt_builder.build_categorization_prompt(url, title)
        content = self.complete(prompt)
        if not content:
            logger.warning("[%s] Empty completion for %s", self.provider, url)
        return parse_classification_response(content or "", title)

    def __call__(self, url: str, title: str) -> ClassificationResult:
        return self.classify(url, title)

    def _post(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST JSON and return the decoded body, mapping failures to typed errors."""
        all_headers = {"Content-Type": "application/json"}
        all_headers.update(headers or {})

        logger.debug("[%s] POST %s", self.provider, endpoint)
        try:
            response = requests.post(
                endpoint,
                headers=all_headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("[%s] Request failed: %s", self.provider, e)
            raise UpstreamError(f"{self.provider} request failed: {e}") from e

        status = response.status_code
        logger.debug("[%s] Response status: %d", self.provider, status)

        if status in (401, 403):
            raise AuthMissingError(f"{self.provider} rejected credentials [{status}]")
        if status == 429:
            raise RateLimitedError(
                f"{self.provider} rate limit exceeded", retry_after=_retry_after(response)
            )
        if not 200 <= status < 300:
            error_msg = response.text[:500]
            logger.error("[%s] API error [%d]: %s", self.provider, status, error_msg)
            raise UpstreamError(
                f"{self.provider} API error [{status}]: {error_msg}", status_code=status
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{self.provider} returned non-JSON body: {e}") from e
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{self.provider} returned unexpected body type")
        return data

    def _chat_content(self, data: Dict[str, Any]) -> str:
        """Text of choices[0].message.content from an OpenAI-style envelope.

        No choices or a null content mean an empty completion. Any other
        shape (non-dict choice, list of content parts, ...) is malformed.
        """
        choices = data.get("choices")
        if not isinstance(choices, list):
            raise MalformedResponseError(f"{self.provider} response missing 'choices'")
        if not choices:
            return ""
        choice = choices[0]
        if not isinstance(choice, dict):
            raise MalformedResponseError(f"{self.provider} choice is not an object")
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise MalformedResponseError(f"{self.provider} message is not an object")
        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise MalformedResponseError(
                f"{self.provider} content is {type(content).__name__}, expected text"
            )
        return content


__all__ = ["BaseClassifierClient"]
