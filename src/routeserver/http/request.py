"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into immutable HTTPRequest objects.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /json_info?lang=en HTTP/1.1\r\n     ← request line          │
    │    Host: 127.0.0.1:8080\r\n                 ← headers               │
    │    Content-Type: application/json\r\n                               │
    │    Content-Length: 20\r\n                                           │
    │    \r\n                                     ← blank line            │
    │    {"username":"alice"}                     ← body (20 bytes)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser only understands what the wire gives it: method, target,
version, headers and a Content-Length delimited body. Path parameters are
NOT part of the request; the router produces them separately in a
RouteMatch and the handler sees them through the RequestContext.

=============================================================================
ERRORS
=============================================================================

Malformed input raises HTTPParseError carrying the status to answer with:

    400 Bad Request                 - bad syntax, truncated body
    405 Method Not Allowed          - unknown method token
    413 Payload Too Large           - request exceeds max_request_size
    505 HTTP Version Not Supported  - anything but HTTP/1.0 or HTTP/1.1

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code the server should answer with before
    closing the connection.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request. Immutable once received.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, HEAD, ...
        path:           Percent-decoded path WITHOUT the query string
        raw_path:       The path as sent, still percent-encoded (for routing)
        version:        "HTTP/1.1" or "HTTP/1.0" (drives keep-alive)
        headers:        Header name (lower-cased) → value
        query_params:   "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}
        body:           Raw body bytes (Content-Length delimited)
        client_address: (ip, port) of the peer, for logging

    Header names are normalized to lowercase at parse time because HTTP
    header names are case-insensitive (RFC 7230).

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)
    raw_path: Optional[str] = None

    @property
    def routing_path(self) -> str:
        """The still-encoded path the router splits on "/"."""
        return self.raw_path if self.raw_path is not None else self.path

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type of the body without parameters.

        "application/json; charset=utf-8" → "application/json"
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_json(self) -> bool:
        """Check if the request body is JSON based on Content-Type."""
        return self.content_type == "application/json"

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this request.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First value of a query parameter.

            # /search?tag=a&tag=b
            request.get_query("tag")  # "a"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> List[str]:
        """All values of a (possibly repeated) query parameter."""
        return list(self.query_params.get(name, []))


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw bytes
            │
            ├─ 1. size check            too large → 413
            ├─ 2. split at \\r\\n\\r\\n     missing   → 400
            ├─ 3. request line          invalid   → 400 / 405 / 505
            ├─ 4. headers               lower-cased, duplicates joined
            ├─ 5. body                  exactly Content-Length bytes
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Maximum allowed request size in bytes.
                              Larger requests are rejected with 413.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, raw_path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # Body length MUST match Content-Length (request smuggling)
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=unquote(raw_path),
            raw_path=raw_path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> Tuple[str, str, Dict[str, List[str]], str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            Tuple of (method, raw_path, query_params, version). The path is
            returned still percent-encoded: decoding %2F before routing
            would turn one segment into two.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        # "/show/42?verbose=1" → path "/show/42", query {"verbose": ["1"]}
        parsed = urlparse(uri)
        path = parsed.path or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lower-cased names.

        Obsolete line folding (continuation lines starting with whitespace)
        is appended to the previous header; repeated headers are joined
        with ", " as RFC 7230 allows.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
