"""Exception handlers for FastAPI application."""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from askpages.exceptions import (
    AskPagesException,
    DomainValidationError,
    ExternalServiceError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from askpages.schemas.common import ErrorResponse


def get_request_id(request: Request) -> str | None:
    """Extract request_id from request state if available."""
    return getattr(request.state, "request_id", None)


def _status_for(exc: AskPagesException) -> int:
    """Map an application exception to its HTTP status code."""
    if isinstance(exc, DomainValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UpstreamRateLimitError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, UpstreamTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, ExternalServiceError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def askpages_exception_handler(
    request: Request,
    exc: AskPagesException,
) -> JSONResponse:
    """Handle custom AskPages exceptions."""
    return JSONResponse(
        status_code=_status_for(exc),
        content=ErrorResponse(
            detail=exc.message,
            error_code=exc.error_code,
            request_id=get_request_id(request),
            details=exc.details,
        ).model_dump(mode="json"),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "error_code": "VALIDATION_ERROR",
            "request_id": get_request_id(request),
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def generic_exception_handler(
    request: Request,
    _exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": get_request_id(request),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the app."""
    app.add_exception_handler(AskPagesException, askpages_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
