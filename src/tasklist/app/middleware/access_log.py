import time
import uuid
import logging
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tasklist.access")


def _fields(request: Request, event: str, **extra: Any) -> dict[str, Any]:
    return {
        "category": "http",
        "event": event,
        "request_id": request.state.request_id,
        "method": request.method,
        "path": request.url.path,
        **extra,
    }


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()

        logger.debug("request.start", extra=_fields(request, "request.start"))

        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.exception("request.error", extra=_fields(request, "request.error", duration_ms=duration_ms))
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request.state.request_id
        logger.info(
            "request.end",
            extra=_fields(request, "request.end", status_code=response.status_code, duration_ms=duration_ms),
        )
        return response
