"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, and
a short request ID for correlation. The request_id is injected into
request.state so router handlers can include it in ApiResponse, and echoed
back in the X-Request-ID response header.

Log format:
    INFO [POST] /api/v1/predictions → 200 (23ms) req_a1b2c3d4e5f6
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pm.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
