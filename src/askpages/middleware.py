"""Middleware and logging setup for the FastAPI application."""

import sys
import time
import uuid

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from askpages.config import settings


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and tag it with a request_id."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with logging and request_id."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        with logger.contextualize(request_id=request_id):
            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
            )

            response = await call_next(request)
            # Streaming responses are timed to the first byte only
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Request-ID"] = request_id
        return response


def configure_logging() -> None:
    """Configure loguru for structured logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "{extra} | "
            "<level>{message}</level>"
        ),
        level="DEBUG" if settings.debug else "INFO",
        serialize=settings.is_production,
    )


def register_middleware(app: FastAPI) -> None:
    """Register all middleware with the app."""
    app.add_middleware(RequestLoggingMiddleware)
