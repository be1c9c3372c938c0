from __future__ import annotations

from django.core.exceptions import ValidationError


class PipelineError(Exception):
    """Base for failures that are reported per step instead of raised to clients."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PipelineError):
    """Missing integration credentials or catalog setup. Retrying cannot fix it."""


class IntegrationError(PipelineError):
    """Timeouts, connection failures and non-2xx answers from an external platform."""

    retryable = True


class NotFound(ValidationError):
    pass


class ConflictError(ValidationError):
    pass


def error_detail(exc: Exception) -> str:
    messages = getattr(exc, "messages", None)
    if messages:
        return messages[0]
    return getattr(exc, "message", None) or str(exc)
