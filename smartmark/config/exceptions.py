"""Custom exceptions for SmartMark."""
from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base exception for pipeline errors. Raise this instead of sys.exit(1)."""
    pass


class ConfigurationError(PipelineError):
    """Required settings are missing or invalid."""


class ValidationError(PipelineError):
    """Caller supplied an invalid bookmark, format or argument."""


class AuthenticationError(PipelineError):
    """No user could be resolved from the supplied credentials."""


class RecordStoreError(PipelineError):
    """The bookmark database could not be reached or queried."""


class BookmarkNotFoundError(RecordStoreError):
    pass


class NotionNotConfiguredError(ConfigurationError):
    pass


# -------------------- Classifier failures -------------------- #


class ClassifierError(PipelineError):
    """A classification request did not produce a usable completion."""


class AuthMissingError(ClassifierError):
    """API key missing or rejected by the provider."""


class RateLimitedError(ClassifierError):
    """Provider answered 429."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(ClassifierError):
    """Network failure or non-2xx status from the provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ClassifierError):
    """Provider body was not JSON or lacked the completion envelope."""


__all__ = [
    "PipelineError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "RecordStoreError",
    "BookmarkNotFoundError",
    "NotionNotConfiguredError",
    "ClassifierError",
    "AuthMissingError",
    "RateLimitedError",
    "UpstreamError",
    "MalformedResponseError",
]
