"""Custom exceptions for the AskPages application."""

from typing import Any


class AskPagesException(Exception):
    """Base exception for all AskPages errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(AskPagesException):
    """Service is misconfigured (e.g. unsupported AI driver). Not retryable."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting, **(details or {})} if setting else details,
        )


class DomainValidationError(AskPagesException):
    """Input validation failed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **(details or {})} if field else details,
        )


class ProcessingError(AskPagesException):
    """Page embedding generation failed."""

    def __init__(
        self,
        message: str,
        page_id: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="PROCESSING_ERROR",
            details={"page_id": str(page_id), **(details or {})}
            if page_id
            else details,
        )


class ExternalServiceError(AskPagesException):
    """External service (OpenAI, Gemini, Ollama, etc.) failed."""

    def __init__(
        self,
        service: str,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
    ) -> None:
        super().__init__(
            message=f"{service} error: {message}",
            error_code=error_code,
            details={"service": service, **(details or {})},
        )


class UpstreamTimeoutError(ExternalServiceError):
    """External service did not answer within the configured timeout."""

    def __init__(self, service: str, message: str = "request timed out") -> None:
        super().__init__(service=service, message=message, error_code="UPSTREAM_TIMEOUT")


class UpstreamRateLimitError(ExternalServiceError):
    """External service throttled the request."""

    def __init__(self, service: str, message: str = "rate limit exceeded") -> None:
        super().__init__(
            service=service, message=message, error_code="UPSTREAM_RATE_LIMITED"
        )
