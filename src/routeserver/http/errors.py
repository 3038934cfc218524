"""
=============================================================================
HANDLER ERRORS & ERROR MAPPER
=============================================================================

Handlers that cannot produce a normal response produce a HandlerError
instead, either by returning it or by raising it. The Error Mapper turns
that error into an HTTP response:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR MAPPING                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HandlerError ──► kind ──► STATUS_BY_KIND ──► status code          │
    │        │                                                            │
    │        └────────► message ──► body (text/plain or text/html)        │
    │                                                                      │
    │   ErrorKind.BAD_CLIENT_DATA    → 400 Bad Request                    │
    │   ErrorKind.PAYLOAD_TOO_LARGE  → 413 Payload Too Large              │
    │   ErrorKind.TIMEOUT            → 504 Gateway Timeout                │
    │   ErrorKind.INTERNAL           → 500 Internal Server Error          │
    │   ErrorKind.DEFAULT            → 500 Internal Server Error          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The table is exhaustive over ErrorKind. Adding a kind without a status
fails at import time, not at request time.

=============================================================================
ERROR CLASSES
=============================================================================

    HandlerError                 DEFAULT            500
    ├── BadRequest               BAD_CLIENT_DATA    400
    │   └── JsonPayloadError     BAD_CLIENT_DATA    400 (or a custom response)
    ├── PayloadTooLarge          PAYLOAD_TOO_LARGE  413
    ├── UpstreamTimeout          TIMEOUT            504
    └── InternalError            INTERNAL           500

=============================================================================
"""

from enum import Enum
from typing import Dict, Optional

from .response import HTTPResponse, ResponseBuilder, TEXT_HTML, TEXT_PLAIN
from .status_codes import HTTPStatus


class ErrorKind(Enum):
    """Closed set of handler error variants."""

    BAD_CLIENT_DATA = "bad_client_data"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TIMEOUT = "timeout"
    INTERNAL = "internal"
    DEFAULT = "default"


STATUS_BY_KIND: Dict[ErrorKind, HTTPStatus] = {
    ErrorKind.BAD_CLIENT_DATA: HTTPStatus.BAD_REQUEST,
    ErrorKind.PAYLOAD_TOO_LARGE: HTTPStatus.PAYLOAD_TOO_LARGE,
    ErrorKind.TIMEOUT: HTTPStatus.GATEWAY_TIMEOUT,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorKind.DEFAULT: HTTPStatus.INTERNAL_SERVER_ERROR,
}

_unmapped = set(ErrorKind) - set(STATUS_BY_KIND)
if _unmapped:
    raise RuntimeError(f"ErrorKind members without a status code: {sorted(k.name for k in _unmapped)}")


class HandlerError(Exception):
    """
    Base class for errors a handler reports instead of a response.

    Args:
        message: Human-readable text placed in the response body.
        html: Render the body as text/html instead of text/plain.
    """

    kind = ErrorKind.DEFAULT

    def __init__(self, message: str = "", *, html: bool = False):
        super().__init__(message)
        self.message = message
        self.html = html

    @property
    def status(self) -> HTTPStatus:
        return STATUS_BY_KIND[self.kind]

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class BadRequest(HandlerError):
    """Malformed client data: bad path parameter, bad body, bad query."""

    kind = ErrorKind.BAD_CLIENT_DATA


class JsonPayloadError(BadRequest):
    """
    A JSON body could not be turned into the declared shape.

    When the route's JsonConfig has an error_handler, the response it
    built is stored on the error and sent instead of the default 400.
    """

    def __init__(self, message: str = "", *, response: Optional[HTTPResponse] = None):
        super().__init__(message)
        self.response = response


class PayloadTooLarge(HandlerError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE


class UpstreamTimeout(HandlerError):
    kind = ErrorKind.TIMEOUT


class InternalError(HandlerError):
    kind = ErrorKind.INTERNAL


def error_response(error: HandlerError) -> HTTPResponse:
    """
    Render a HandlerError as an HTTP response.

    Pure function of the error: status from STATUS_BY_KIND, body from the
    message (falling back to the reason phrase so the body is never empty).
    """
    response = getattr(error, "response", None)
    if response is not None:
        return response

    status = STATUS_BY_KIND[error.kind]
    return (ResponseBuilder()
        .status(status)
        .content_type(TEXT_HTML if error.html else TEXT_PLAIN)
        .body(error.message or status.phrase)
        .build())
