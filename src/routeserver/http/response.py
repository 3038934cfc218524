"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP responses and serializes them for the socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                      ← status line           │
    │    Content-Type: text/plain; charset=utf-8\r\n                      │
    │    Content-Length: 12\r\n                   ← always computed       │
    │    Date: Sun, 18 Oct 2026 10:00:00 GMT\r\n  ← always added          │
    │    Server: routeserver/1.0\r\n                                      │
    │    \r\n                                                             │
    │    Hello World!                             ← body                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every response built here carries a Content-Type. It defaults to plain
text; json() switches it to application/json and html() to text/html.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import json

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
APPLICATION_JSON = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Produced fresh for every request and never reused. Use ResponseBuilder
    (or the helpers at the bottom of this module) to construct one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 504 Gateway Timeout"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (handy in tests and logs)."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(
        self,
        server_name: str = "routeserver/1.0",
        include_body: bool = True,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are filled in when missing.
        include_body=False is used for HEAD: headers (including the real
        Content-Length) are sent, the body is not.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Type", TEXT_PLAIN)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + (self.body if include_body else b"")


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"name": "user"})
            .header("X-Custom", "value")
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS & HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def close_connection(self) -> "ResponseBuilder":
        """Ask the client to close the connection after this response."""
        return self.header("Connection", "close")

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body. Content-Type stays whatever was set (plain text if none)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = TEXT_HTML
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        Serialize data to JSON and mark the response as application/json.

        ensure_ascii=False keeps non-ASCII text readable in the body.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = APPLICATION_JSON
        return self

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> HTTPResponse:
        headers = dict(self._headers)
        headers.setdefault("Content-Type", TEXT_PLAIN)
        return HTTPResponse(status=self._status, headers=headers, body=self._body)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

    Example: "Sun, 18 Oct 2026 10:00:00 GMT". Always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok("Hello World!")
#     return not_found("No route matches /nope")
#     return method_not_allowed(["GET"])
#
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK with the body type deciding the Content-Type:
    dict/list → JSON, str → text, bytes → raw (plain text unless overridden).
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or TEXT_PLAIN)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def text_response(status: HTTPStatus, message: str) -> HTTPResponse:
    return ResponseBuilder().status(status).text(message).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return text_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return text_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: Optional[List[str]] = None) -> HTTPResponse:
    """
    405 Method Not Allowed.

    When the allowed methods are known they go into the Allow header
    (RFC 7231 requires it for 405 responses on existing resources).
    """
    builder = ResponseBuilder().status(HTTPStatus.METHOD_NOT_ALLOWED).text("Method Not Allowed")
    if allowed_methods:
        builder.header("Allow", ", ".join(allowed_methods))
    return builder.build()


def conflict(message: str = "") -> HTTPResponse:
    return text_response(HTTPStatus.CONFLICT, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a generic message. Never put exception details in here."""
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
