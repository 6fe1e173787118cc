"""
Per-request access logging.

Each request is tagged with an id (taken from an incoming X-Request-ID
header or generated) that is echoed on the response and written, with
the status and timing, as one line at the REQUEST log level. Records
logged while the request is handled carry the id in their extra fields.
"""

import time
import uuid

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from linkgate.core.logging import REQUEST_LEVEL

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        started = time.perf_counter()
        # Log lines emitted while handling the request carry its id
        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.log(
            REQUEST_LEVEL,
            "{method} {host}{path} {status_code} {elapsed_ms}ms {client} {request_id}",
            method=request.method,
            host=request.headers.get("host", ""),
            path=request.url.path,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
            client=request.client.host if request.client else "unknown",
            request_id=request_id,
        )
        return response


def add_logging_middleware(app) -> None:
    app.add_middleware(LoggingMiddleware)
