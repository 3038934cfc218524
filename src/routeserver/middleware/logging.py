"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request on the "routeserver.access" logger, with timing
and a request id that is also returned in the X-Request-ID header.

    text (Apache style):
        127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /show/7" 200 9 0.41ms

    json (log aggregators):
        {"request_id": "a1b2c3d4", "method": "GET", "path": "/show/7",
         "status_code": 200, "duration_ms": 0.41, ...}

A client-supplied X-Request-ID is reused so a request can be followed
across services; otherwise a short random id is generated.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Iterable, Optional
from dataclasses import asdict, dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Configure separately from the module loggers, e.g.
#   logging.getLogger("routeserver.access").addHandler(file_handler)
logger = logging.getLogger("routeserver.access")

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access log middleware. Add it first so it sees every request.

    Args:
        log_format: "text" or "json".
        include_request_id: Set X-Request-ID on responses.
        log_level: Level of the access lines.
        skip_paths: Paths that are not logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.set_header(REQUEST_ID_HEADER, request_id)

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query="&".join(
                f"{key}={value}"
                for key, values in request.query_params.items()
                for value in values
            ),
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        logger.log(self.log_level, entry.to_json() if self.log_format == "json" else entry.to_text())
        return response
