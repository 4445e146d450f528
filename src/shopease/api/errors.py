"""Error responses for the ShopEase cache API.

Cache configuration errors (unknown category, unknown event kind, malformed
params) are caller mistakes and map to 400. Anything unexpected maps to 500
without leaking details.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shopease.cache.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ErrorMessage(BaseModel):
    """Single error message."""

    code: str
    text: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    messages: list[ErrorMessage]


def error_response(status_code: int, code: str, text: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            messages=[
                ErrorMessage(code=code, text=text, timestamp=datetime.now(UTC).isoformat())
            ]
        ).model_dump(),
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Exception handler for cache configuration errors."""
    return error_response(400, "BadRequest", str(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "InternalServerError", "An unexpected error occurred")
