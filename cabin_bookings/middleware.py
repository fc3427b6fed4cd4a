"""
FastAPI middleware for request tracing and log correlation.
"""

from __future__ import annotations

import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a request ID to every request, response and log line.

    An ``X-Request-ID`` sent by the caller (e.g. the booking UI or a payment
    webhook relay) is reused; otherwise a UUID4 is generated. The ID is:

    1. stored in ``request.state.request_id`` for route handlers
    2. bound to structlog contextvars so every event logged while handling the
       request carries ``request_id``
    3. echoed back in the ``X-Request-ID`` response header

    Example:
        >>> app.add_middleware(RequestIDMiddleware)
        >>> # logger.info("booking_created", ...) now includes request_id=...
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
