import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """One access line per request; uploads also log their declared size."""

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        user_id = request.headers.get("x-user-id", "-")

        response = await call_next(request)

        elapsed = time.monotonic() - start
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s -> %s (%.2fs) user=%s bytes=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            user_id,
            request.headers.get("content-length", "0"),
        )

        return response
