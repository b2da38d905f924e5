"""
Observability Middleware.

Correlation IDs, request timing and one structured log line per request.
Webhook deliveries from the mail relay carry their own correlation header,
so a forwarded email can be traced from the relay's logs into ours.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"

# Liveness probes hit this constantly
QUIET_PATHS = frozenset({"/health"})

logger = logging.getLogger("dinkup.http")


def configure_logging(level: str) -> None:
    """Install a root handler at the configured level (no-op if one exists)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "ip": request.client.host if request.client else "unknown"
        }
        message = "%s %s -> %s (%.2f ms) [%s]"
        args = (request.method, request.url.path, response.status_code, duration_ms, correlation_id)

        if response.status_code >= 500:
            logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            logger.warning(message, *args, extra=log_data)
        elif request.url.path in QUIET_PATHS:
            logger.debug(message, *args, extra=log_data)
        else:
            logger.info(message, *args, extra=log_data)

        return response
