"""Custom FastAPI middleware."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from monthplan.core.context import request_id_ctx_var, user_id_ctx_var

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the call, echo it back, and log slow-path timing."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        request_token = request_id_ctx_var.set(request_id)
        user_token = user_id_ctx_var.set(None)
        start = perf_counter()

        try:
            response = await call_next(request)
            logger.debug(
                "%s %s -> %s in %.1fms",
                request.method,
                request.url.path,
                response.status_code,
                (perf_counter() - start) * 1000,
            )
        finally:
            user_id_ctx_var.reset(user_token)
            request_id_ctx_var.reset(request_token)

        response.headers["X-Request-Id"] = request_id
        return response
