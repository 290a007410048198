# backend/asset_diary/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Takes the ID from X-Correlation-ID (or X-Request-ID), generating a UUID when
neither is present, exposes it to logging through the request context and
echoes it back in the X-Correlation-ID response header.

Usage:
    app.add_middleware(CorrelationIdMiddleware)

    curl -H "X-Correlation-ID: trace-123" http://localhost:8000/health
"""

import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from asset_diary.utils.context import reset_correlation_id, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or str(uuid.uuid4())
        )
        token = set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            reset_correlation_id(token)
