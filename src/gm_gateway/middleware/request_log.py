"""Request logging middleware.

Tags each request with a request_id (reusing an inbound X-Request-ID from a
proxy when one is present), exposes it on request.state for the response
envelope, echoes it back as a header, and logs one line per request:

    INFO [POST] /api/v1/orders → 201 (23ms) req_a1b2c3d4e5f6

Server errors are logged at WARNING so they stand out from normal traffic.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("gm.request")

REQUEST_ID_HEADER = "x-request-id"
_MAX_INBOUND_ID = 64


def resolve_request_id(inbound: str | None) -> str:
    if inbound and len(inbound) <= _MAX_INBOUND_ID and inbound.isprintable():
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
