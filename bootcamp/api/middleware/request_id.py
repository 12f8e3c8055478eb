"""
Request correlation and access logging.

Each request gets an ``X-Request-ID`` (the client's, or a new UUID) and one
INFO line on completion. Enrollment and certificate ids in the URL are bound
to the log context so service logs during the request carry them.
"""

import logging
import re
import time
import uuid
from typing import Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from bootcamp.config import get_settings
from bootcamp.logging_config import bind_log_context, get_logger, reset_log_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_RESOURCE_PATH = re.compile(r"/(enrollments|certificates)/([0-9a-fA-F-]{36})(?:/|$)")
_RESOURCE_FIELDS = {"enrollments": "enrollment_id", "certificates": "certificate_id"}


def resource_ids(path: str) -> Dict[str, str]:
    """Enrollment/certificate ids addressed by a URL path."""
    return {_RESOURCE_FIELDS[kind]: value for kind, value in _RESOURCE_PATH.findall(path)}


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_log_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            **resource_ids(request.url.path),
        )

        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            response.headers[REQUEST_ID_HEADER] = request_id

            slow = duration_ms > get_settings().slow_request_ms
            logger.log(
                logging.WARNING if slow else logging.INFO,
                "Slow request" if slow else "Request served",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
            return response
        finally:
            reset_log_context(token)
