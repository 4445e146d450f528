"""Request ID middleware.

Propagates x-request-id to logging context variables and response headers.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shopease.observability.logging import bind_request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Extracts or generates a request ID for every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

        request.state.request_id = request_id
        with bind_request_id(request_id):
            response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
