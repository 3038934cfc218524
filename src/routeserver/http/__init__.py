"""
=============================================================================
HTTP LAYER
=============================================================================

    request.py       raw bytes → HTTPRequest
    router.py        route table, scopes, path matcher, dispatch
    context.py       RequestContext handed to handlers, body/param extraction
    responder.py     handler return value → HTTPResponse
    errors.py        HandlerError kinds and the error → status table
    response.py      HTTPResponse, ResponseBuilder, helpers
    status_codes.py  HTTPStatus with reason phrases

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    bad_request,
    not_found,
    method_not_allowed,
    conflict,
    internal_error,
)
from .errors import (
    ErrorKind,
    HandlerError,
    BadRequest,
    JsonPayloadError,
    PayloadTooLarge,
    UpstreamTimeout,
    InternalError,
    error_response,
)
from .context import RequestContext, JsonConfig
from .responder import into_response
from .router import Router, Route, RouteMatch, Scope, DuplicateRouteError
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "conflict",
    "internal_error",
    "into_response",

    # Errors
    "ErrorKind",
    "HandlerError",
    "BadRequest",
    "JsonPayloadError",
    "PayloadTooLarge",
    "UpstreamTimeout",
    "InternalError",
    "error_response",

    # Handlers
    "RequestContext",
    "JsonConfig",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Scope",
    "DuplicateRouteError",

    "HTTPStatus",
]
