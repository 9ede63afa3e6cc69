"""Request context middleware."""
import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cortex_review.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    요청마다 Request ID를 부여하는 미들웨어.

    The id is taken from the incoming header when present, stored on
    ``request.state``, bound into structlog's context for every event logged
    while the request runs (store writes included), and echoed back in the
    response header.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            logger.info("request_started", method=request.method, path=request.url.path)
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    error_type=type(e).__name__,
                )
                raise

            response.headers[self.header_name] = request_id
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return response


def get_request_id(request: Request) -> str:
    """Request ID of the current request (a fresh one outside the middleware)."""
    return getattr(request.state, "request_id", None) or str(uuid4())
