"""
Request middleware: correlation ids, caller context and access logging.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from adventure_booking.core.logging import bind_caller, get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Every log line written while serving a request carries its request id
    and the booking caller (user id, session id). The request id is taken
    from an incoming X-Request-ID header when the front end sends one.

    Access lines are logged at a level matching the outcome: 5xx as errors,
    4xx (sold out, bad dates, validation) as warnings.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        session_id = request.headers.get("X-Session-Id")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        bind_caller(request.headers.get("X-User-Id"), session_id)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("request_failed", error=str(e), duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        if session_id:
            response.headers["X-Session-Id"] = session_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
