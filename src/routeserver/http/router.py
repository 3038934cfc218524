"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler through an ordered route table:
- Static paths: /hey, /app/index.html
- Named parameters: /show/{id}, /{username}/{id}/index.html
- Scopes: a prefix shared by a group of routes (/app, /api)
- Method-based routing: GET, POST, HEAD, ...

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /show/42                                                       │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTE TABLE (registration order)                            │   │
    │   │  ┌────────────────────────────────────────────────────────┐ │   │
    │   │  │ GET  /appapp          → appapp                         │ │   │
    │   │  │ GET  /                → index                          │ │   │
    │   │  │ POST /echo            → echo                           │ │   │
    │   │  │ GET  /show/{id}       → show_id       ← FIRST MATCH    │ │   │
    │   │  │ GET  /{username}/...  → welcome                        │ │   │
    │   │  └────────────────────────────────────────────────────────┘ │   │
    │   │                                                              │   │
    │   │  RouteMatch(route=show_id, params={"id": "42"})              │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   show_id(RequestContext(request, params, state, route))             │
    │        │                                                             │
    │        ▼                                                             │
    │   into_response(...)  /  error_response(HandlerError)                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

Both pattern and path are split on "/" and compared segment by segment:

    Pattern: /test/{v1}/{v2}/    →  ["", "test", {v1}, {v2}, ""]
    Path:    /test/a/b/          →  ["", "test", "a",  "b",  ""]   MATCH
    Path:    /test/a/b           →  ["", "test", "a",  "b"]        no (count)
    Path:    /test//b/           →  ["", "test", "",   "b",  ""]   no (empty)

    - segment counts must be equal
    - literal segments must be equal (case-sensitive)
    - a parameter segment matches any NON-EMPTY path segment
    - the path is split before percent-decoding: /a%2Fb/ has one segment "a/b"

So "/app" and "/app/" are different routes; nothing is normalized.
The first route in registration order that matches wins, and scopes write
into the same table so that order is global.

=============================================================================
NO MATCH
=============================================================================

When nothing matches, the default handler answers:

    path registered for other methods  →  405 + Allow: GET, POST
    otherwise, GET                     →  404 Not Found
    otherwise, any other method        →  405 Method Not Allowed

Router.set_default() replaces this behaviour.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
from urllib.parse import unquote
import logging
import re

from .context import DEFAULT_PAYLOAD_LIMIT, RequestContext
from .errors import HandlerError, error_response
from .request import HTTPRequest
from .responder import Responder, into_response
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

Handler = Callable[[RequestContext], Responder]


class DuplicateRouteError(ValueError):
    """A (method, pattern) pair was registered twice."""


class RouteType(Enum):
    """How a pattern segment is matched."""

    STATIC = "static"       # app - exact match required
    PARAM = "param"         # {id} - captures one non-empty path segment


@dataclass(frozen=True)
class Segment:
    type: RouteType
    value: str              # literal text, or the parameter name

    @property
    def is_param(self) -> bool:
        return self.type is RouteType.PARAM


PARAM_PATTERN = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def split_path(path: str) -> List[str]:
    """
    Split a percent-encoded path on "/" and decode each segment.

        "/a%2Fb/7/index.html"  →  ["", "a/b", "7", "index.html"]
    """
    return [unquote(part) for part in path.split("/")]


def compile_pattern(path: str) -> Tuple[Segment, ...]:
    """
    Split a route pattern into segments.

        "/show/{id}"  →  (STATIC "", STATIC "show", PARAM "id")

    Raises:
        ValueError: pattern without a leading "/", a segment that mixes
                    braces with literal text, or a repeated parameter name.
    """
    if not path.startswith("/"):
        raise ValueError(f"Route pattern must start with '/': {path!r}")

    segments: List[Segment] = []
    seen: Set[str] = set()

    for part in path.split("/"):
        match = PARAM_PATTERN.match(part)
        if match:
            name = match.group(1)
            if name in seen:
                raise ValueError(f"Duplicate parameter {name!r} in route pattern {path!r}")
            seen.add(name)
            segments.append(Segment(RouteType.PARAM, name))
        elif "{" in part or "}" in part:
            raise ValueError(f"Invalid segment {part!r} in route pattern {path!r}")
        else:
            segments.append(Segment(RouteType.STATIC, part))

    return tuple(segments)


def join_paths(prefix: str, path: str) -> str:
    """
    Join a scope prefix and a route path.

        join_paths("/app", "")            → "/app"
        join_paths("/app", "/")           → "/app/"
        join_paths("/app", "/index.html") → "/app/index.html"
        join_paths("/app", "index.html")  → "/app/index.html"
    """
    if not path:
        return prefix or "/"
    if prefix.endswith("/") and path.startswith("/"):
        return prefix + path[1:]
    if prefix.endswith("/") or path.startswith("/"):
        return prefix + path
    return prefix + "/" + path


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/show/{id}",       # full pattern, scope prefix included
            method="GET",            # None = any method
            handler=show_id,
            name="show_id",          # for url_for()
            meta={},                 # e.g. {"json_config": JsonConfig(...)}
        )
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    segments: Tuple[Segment, ...] = field(default=(), repr=False)

    def __post_init__(self):
        if not self.segments:
            self.segments = compile_pattern(self.path)

    @property
    def param_names(self) -> List[str]:
        return [s.value for s in self.segments if s.is_param]

    @property
    def key(self) -> Tuple[str, Tuple[Optional[str], ...]]:
        """
        Identity used for duplicate detection. Parameter names do not
        count: /show/{id} and /show/{n} are the same pattern.
        """
        shape = tuple(None if s.is_param else s.value for s in self.segments)
        return (self.method or "*", shape)

    def match_path(self, parts: List[str]) -> Optional[Dict[str, str]]:
        """Return the captured params if the split path matches, else None."""
        if len(parts) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            if segment.is_param:
                if not part:
                    return None
                params[segment.value] = part
            elif segment.value != part:
                return None
        return params


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

        Pattern: /show/{id}
        Path:    /show/42
        Result:  RouteMatch(route=<Route>, params={"id": "42"})
    """

    route: Route
    params: Dict[str, str]


# =============================================================================
# DECORATOR-STYLE ROUTE REGISTRATION
# =============================================================================
#
#     @router.get("/hey")
#     def hey(ctx):
#         return "Hey there!"
#
# is the same as router.add_route("/hey", hey, method="GET"). Router and
# Scope share these through _Registrar.
#
# =============================================================================

class _Registrar:

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        raise NotImplementedError

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, **meta)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name, **meta)

    def post(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name, **meta)

    def put(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name, **meta)

    def delete(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name, **meta)

    def patch(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH", name, **meta)

    def head(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "HEAD", name, **meta)

    def options(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "OPTIONS", name, **meta)

    def configure(self, fn: Callable[[Any], None]) -> "_Registrar":
        """
        Apply a registration function, Flask-blueprint style:

            def api_routes(scope):
                scope.add_route("/testtest", testtest, method="GET")

            router.scope("/api").configure(api_routes)
        """
        fn(self)
        return self


class Scope(_Registrar):
    """
    A path prefix for a group of routes.

    Routes added through a scope land in the parent router's table at the
    moment they are added, so first-match order stays global:

        app = router.scope("/app")
        app.add_route("/index.html", index_html, method="GET")   # /app/index.html
        app.add_route("/", app_index, method="GET")              # /app/
        app.add_route("", app_index, method="GET")               # /app
    """

    def __init__(self, router: "Router", prefix: str):
        self.router = router
        self.prefix = prefix

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        return self.router.add_route(join_paths(self.prefix, path), handler, method, name, **meta)

    def scope(self, prefix: str) -> "Scope":
        return Scope(self.router, join_paths(self.prefix, prefix))

    def __repr__(self) -> str:
        return f"Scope({self.prefix!r})"


class Router(_Registrar):
    """
    Ordered route table plus dispatch.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        @router.get("/show/{id}", name="show_id")
        def show_id(ctx):
            return f"show_id: {ctx.uint_param('id')}"

        router.url_for("show_id", id="7")      # "/show/7"
        router.handle(request, state)          # HTTPResponse

    The table is built at startup and only read afterwards, so handle()
    needs no locking.

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._named_routes: Dict[str, Route] = {}
        self._keys: Set[Tuple[str, Tuple[Optional[str], ...]]] = set()
        self._default: Handler = self._default_handler

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        """
        Register a route.

        Args:
            path: Pattern such as /show/{id}
            handler: Callable taking a RequestContext
            method: HTTP method (None for any method)
            name: Optional route name for url_for()
            **meta: Extra data kept on route.meta (e.g. json_config)

        Raises:
            DuplicateRouteError: The same method and pattern are already registered.
            ValueError: Malformed pattern or reused route name.
        """
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            meta=meta,
        )

        if route.key in self._keys:
            raise DuplicateRouteError(f"Route already registered: {route.method or 'ANY'} {path}")
        if name and name in self._named_routes:
            raise ValueError(f"Route name already registered: {name!r}")

        self._keys.add(route.key)
        self._routes.append(route)
        if name:
            self._named_routes[name] = route

        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def scope(self, prefix: str) -> Scope:
        return Scope(self, prefix)

    def set_default(self, handler: Handler) -> None:
        """Replace the handler used when no route matches."""
        self._default = handler

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        First route, in registration order, matching method and path.

        path is the percent-encoded request path; segments are decoded
        after splitting, so %2F stays inside its segment.
        """
        method = method.upper()
        parts = split_path(path)

        for route in self._routes:
            if route.method and route.method != method:
                continue
            params = route.match_path(parts)
            if params is not None:
                return RouteMatch(route=route, params=params)

        return None

    def allowed_methods(self, path: str) -> List[str]:
        """Methods registered for a path, for the Allow header of a 405."""
        parts = split_path(path)
        methods: Set[str] = set()

        for route in self._routes:
            if route.match_path(parts) is not None:
                if route.method is None:
                    return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
                methods.add(route.method)

        return sorted(methods)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(
        self,
        request: HTTPRequest,
        state: Any = None,
        payload_limit: int = DEFAULT_PAYLOAD_LIMIT,
    ) -> HTTPResponse:
        """
        Route a request and produce its response.

            1. match (method, path)        no match → default handler
            2. build the RequestContext
            3. call the handler            raised HandlerError → error_response
            4. into_response(result)       returned HandlerError → error_response

        Any other exception propagates; the server turns it into a 500.
        """
        match = self.match(request.method, request.routing_path)

        if match:
            ctx = RequestContext(
                request=request,
                params=match.params,
                state=state,
                route=match.route,
                payload_limit=payload_limit,
            )
            handler = match.route.handler
        else:
            ctx = RequestContext(request=request, state=state, payload_limit=payload_limit)
            handler = self._default

        try:
            result = handler(ctx)
        except HandlerError as e:
            result = e

        if isinstance(result, HandlerError):
            logger.info(
                f"{request.method} {request.path} -> {int(result.status)} "
                f"{type(result).__name__}: {result}"
            )
            return error_response(result)

        return into_response(result)

    def _default_handler(self, ctx: RequestContext) -> HTTPResponse:
        allowed = self.allowed_methods(ctx.request.routing_path)
        if allowed:
            return method_not_allowed(allowed)
        if ctx.method == "GET":
            return not_found(f"No route matches {ctx.path}")
        return method_not_allowed()

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def url_for(self, name: str, **params: Any) -> Optional[str]:
        """
        Build the path of a named route, or None for an unknown name.

            router.url_for("show_id", id=7)   # "/show/7"

        Raises:
            ValueError: A parameter of the pattern was not given.
        """
        route = self._named_routes.get(name)
        if not route:
            return None

        parts = []
        for segment in route.segments:
            if segment.is_param:
                if segment.value not in params:
                    raise ValueError(f"Missing parameter {segment.value!r} for route {name!r}")
                parts.append(str(params[segment.value]))
            else:
                parts.append(segment.value)
        return "/".join(parts)

    def routes(self) -> List[Route]:
        """All routes in registration order."""
        return list(self._routes)

    def describe(self) -> str:
        """
        Route table as text, for startup logs:

              GET      /appapp
              HEAD     /appapp
              GET      /show/{id}
        """
        return "\n".join(f"  {route.method or 'ANY':8} {route.path}" for route in self._routes)

    def __len__(self) -> int:
        return len(self._routes)
