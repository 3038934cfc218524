"""
=============================================================================
REQUEST CONTEXT & EXTRACTION
=============================================================================

Everything a handler may look at for one request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  RequestContext                                                     │
    │  ─────────────────────────────────────────────────────────────────  │
    │   request        the immutable HTTPRequest                          │
    │   params         {"id": "42"}  raw strings from the RouteMatch      │
    │   state          SharedState shared by all requests                 │
    │   route          the matched Route (None for the default handler)   │
    │   payload_limit  max body size for body() / text()                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EXTRACTION
=============================================================================

Path parameters are strings. Handlers parse them explicitly:

    user_id = ctx.uint_param("id")            # BadRequest on "abc"
    ratio   = ctx.param_as("ratio", float)    # BadRequest on ValueError

The body can be read three ways:

    ctx.body()        bytes, up to payload_limit   → PayloadTooLarge
    ctx.text()        UTF-8 str, same limit        → PayloadTooLarge / BadRequest
    ctx.json(Model)   pydantic model               → JsonPayloadError

Every failure is a HandlerError raised from the helper; the router turns
it into the error response before the handler gets any further.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar,
)

from pydantic import BaseModel, ValidationError

from .errors import BadRequest, JsonPayloadError, PayloadTooLarge
from .request import HTTPRequest
from .response import HTTPResponse

if TYPE_CHECKING:
    from ..state import SharedState
    from .router import Route


T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DEFAULT_PAYLOAD_LIMIT = 256 * 1024        # body() / text()
DEFAULT_JSON_LIMIT = 2 * 1024 * 1024      # json()

JsonErrorHandler = Callable[[JsonPayloadError, HTTPRequest], HTTPResponse]


@dataclass(frozen=True)
class JsonConfig:
    """
    Settings for ctx.json(), usually attached to a route:

        router.add_route(
            "/json_info", json_info, method="POST",
            json_config=JsonConfig(limit=4096, error_handler=lambda err, req: conflict()),
        )

    Attributes:
        limit: Maximum body size in bytes.
        content_type_required: Reject bodies not sent as application/json.
        error_handler: Builds the response to send instead of the default
                       400 when decoding fails.
    """

    limit: int = DEFAULT_JSON_LIMIT
    content_type_required: bool = False
    error_handler: Optional[JsonErrorHandler] = None


@dataclass(frozen=True)
class RequestContext:
    request: HTTPRequest
    params: Mapping[str, str] = field(default_factory=dict)
    state: Optional["SharedState"] = None
    route: Optional["Route"] = None
    payload_limit: int = DEFAULT_PAYLOAD_LIMIT

    # =========================================================================
    # REQUEST SHORTCUTS
    # =========================================================================

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def headers(self) -> Dict[str, str]:
        return self.request.headers

    @property
    def query(self) -> Mapping[str, List[str]]:
        return self.request.query_params

    def query_value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.get_query(name, default)

    def query_list(self, name: str) -> List[str]:
        return self.request.get_query_list(name)

    # =========================================================================
    # PATH PARAMETERS
    # =========================================================================

    def param(self, name: str) -> str:
        """Raw path parameter. A missing name is a routing bug, not a client error."""
        return self.params[name]

    def param_as(self, name: str, parse: Callable[[str], T]) -> T:
        """
        Parse a path parameter, mapping parse failures to BadRequest.

            ctx.param_as("id", int)
        """
        raw = self.param(name)
        try:
            return parse(raw)
        except (TypeError, ValueError) as e:
            raise BadRequest(f"can not parse {raw!r} for parameter {name!r}: {e}")

    def uint_param(self, name: str) -> int:
        """
        Parse a path parameter as an unsigned decimal integer.

        Only ASCII digits are accepted: "42" and "007" pass,
        "-1", "+1", " 1", "1.0" and "" do not.
        """
        return self.param_as(name, parse_unsigned)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self) -> bytes:
        """Raw body bytes, bounded by payload_limit."""
        body = self.request.body
        if len(body) > self.payload_limit:
            raise PayloadTooLarge(
                f"payload of {len(body)} bytes exceeds the limit of {self.payload_limit} bytes"
            )
        return body

    def text(self) -> str:
        """Body decoded as UTF-8, bounded by payload_limit."""
        try:
            return self.body().decode("utf-8")
        except UnicodeDecodeError:
            raise BadRequest("request body is not valid UTF-8")

    def json(self, model: Type[M], config: Optional[JsonConfig] = None) -> M:
        """
        Decode the body into a pydantic model.

        The JsonConfig comes from the argument, else the route's
        "json_config" meta, else the defaults.

        Raises:
            JsonPayloadError: body too large, wrong content type, invalid
                              JSON or JSON not matching the model.
        """
        if config is None:
            config = self._route_meta("json_config") or JsonConfig()

        body = self.request.body
        if len(body) > config.limit:
            raise self._json_error(
                config, f"JSON payload of {len(body)} bytes exceeds the limit of {config.limit} bytes"
            )
        if config.content_type_required and not self.request.is_json:
            raise self._json_error(config, "Content-Type must be application/json")

        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise self._json_error(config, f"JSON deserialize error: {e.error_count()} validation error(s)")

    def _json_error(self, config: JsonConfig, message: str) -> JsonPayloadError:
        error = JsonPayloadError(message)
        if config.error_handler is not None:
            error.response = config.error_handler(error, self.request)
        return error

    def _route_meta(self, key: str) -> Any:
        if self.route is None:
            return None
        return self.route.meta.get(key)


def parse_unsigned(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise ValueError("invalid digit found in string")
    return int(value)
