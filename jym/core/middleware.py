# jym/core/middleware.py
"""Custom middleware for request handling"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)


async def correlation_id_middleware(request: Request, call_next):
    """Attach a correlation ID to every request; workers log it too"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log request start and finish with timing"""
    start = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    base = {
        "correlation_id": correlation_id,
        "method": request.method,
        "path": request.url.path,
    }

    logger.info(f"→ {request.method} {request.url.path}", extra=base)

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.info(
        f"← {request.method} {request.url.path} {response.status_code} ({duration_ms} ms)",
        extra={**base, "status_code": response.status_code, "duration_ms": duration_ms},
    )
    return response
