"""
=============================================================================
DEMO APPLICATION
=============================================================================

A small application exercising every routing and handler feature:

    ┌──────────────────────────────────┬──────────────────────────────────┐
    │ route                            │ shows                            │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ GET  /appapp, /api/testtest      │ configure() + scopes, HEAD → 405 │
    │ GET  /app_name                   │ read-only shared state           │
    │ GET|POST /mutable_state          │ locked shared counter            │
    │ POST /json_info                  │ pydantic body, 409 on bad JSON   │
    │ GET  /return_json                │ pydantic response                │
    │ GET  /index_error, /400 ...      │ HandlerError → status mapping    │
    │ GET  /app, /app/, /app/index.html│ scope root variants              │
    │ POST /echo                       │ raw body                         │
    │ GET  /show/{id}                  │ typed path parameter             │
    └──────────────────────────────────┴──────────────────────────────────┘

The first matching route in registration order wins, so the wide
/{username}/{id}/index.html pattern is registered after the fixed paths.

=============================================================================
"""

from typing import Optional

from pydantic import BaseModel

from .config import ServerConfig
from .http import (
    BadRequest, HandlerError, InternalError, JsonConfig, RequestContext,
    Router, Scope, UpstreamTimeout, conflict, method_not_allowed,
)
from .middleware import LoggingMiddleware
from .server import HTTPServer
from .state import SharedState


JSON_INFO_LIMIT = 4096


class Info(BaseModel):
    username: str


class NamedObject(BaseModel):
    name: str


# =============================================================================
# HANDLERS
# =============================================================================

def index(ctx: RequestContext):
    return "Hello World!"


def echo(ctx: RequestContext):
    return ctx.body()


def hey(ctx: RequestContext):
    return "Hey there!"


def root(ctx: RequestContext):
    return "/root"


def app_name(ctx: RequestContext):
    return f"Hello {ctx.state.app_name}!"


def mutable_state(ctx: RequestContext):
    return f"Request number: {ctx.state.counter.increment()}"


def json_info(ctx: RequestContext):
    info = ctx.json(Info)
    return f"Welcome {info.username}!"


def return_json(ctx: RequestContext):
    return NamedObject(name="user")


def show_id(ctx: RequestContext):
    return f"show_id: {ctx.uint_param('id')}"


def path_values(ctx: RequestContext):
    v1, v2 = ctx.param("v1"), ctx.param("v2")
    return f"Test values {v1} {v2} {v1} {v2}"


def welcome(ctx: RequestContext):
    return f"Welcome {ctx.param('username')}! id: {ctx.uint_param('id')}"


def app_index_html(ctx: RequestContext):
    return "Hello app/index.html"


def app_index(ctx: RequestContext):
    return "Hello app/index"


def index_error(ctx: RequestContext):
    return HandlerError("my error: test")


def error_400(ctx: RequestContext):
    raise BadRequest("bad request", html=True)


def error_408(ctx: RequestContext):
    raise UpstreamTimeout("timeout", html=True)


def error_500(ctx: RequestContext):
    raise InternalError("internal error", html=True)


def get_only(ctx: RequestContext):
    return method_not_allowed(["GET"])


def json_conflict(error, request):
    return conflict()


# =============================================================================
# REGISTRATION
# =============================================================================

def configure_root(scope):
    scope.add_route("/appapp", lambda ctx: "appapp", method="GET")
    scope.add_route("/appapp", get_only, method="HEAD")


def configure_api(scope: Scope):
    scope.add_route("/testtest", lambda ctx: "testtest", method="GET")
    scope.add_route("/testtest", get_only, method="HEAD")


def build_router() -> Router:
    """The demo route table, in dispatch order."""
    router = Router()

    router.configure(configure_root)
    router.scope("/api").configure(configure_api)
    router.add_route("/root", root, method="GET")

    router.add_route("/app_name", app_name, method="GET", name="app_name")
    router.add_route("/mutable_state", mutable_state, method="GET")
    router.add_route("/mutable_state", mutable_state, method="POST")
    router.add_route(
        "/json_info", json_info, method="POST",
        json_config=JsonConfig(limit=JSON_INFO_LIMIT, error_handler=json_conflict),
    )
    router.add_route("/return_json", return_json, method="GET")

    router.add_route("/index_error", index_error, method="GET")
    router.add_route("/400", error_400, method="GET")
    router.add_route("/408", error_408, method="GET")
    router.add_route("/500", error_500, method="GET")

    app = router.scope("/app")
    app.add_route("index.html", app_index_html, method="GET")
    app.add_route("/", app_index, method="GET")
    app.add_route("", app_index, method="GET")

    router.add_route("/", index, method="GET", name="index")
    router.add_route("/echo", echo, method="POST")
    router.add_route("/test/{v1}/{v2}/", path_values, method="GET")
    router.add_route("/show/{id}", show_id, method="GET", name="show_id")
    router.add_route("/{username}/{id}/index.html", welcome, method="GET", name="welcome")
    router.add_route("/hey", hey, method="GET")

    return router


def create_app(
    config: Optional[ServerConfig] = None,
    state: Optional[SharedState] = None,
) -> HTTPServer:
    """
    Build the demo server: route table, shared state and access logging.

        server = create_app(ServerConfig(port=8080))
        server.run()
    """
    config = config or ServerConfig()
    server = HTTPServer(config, state=state, router=build_router())
    server.use(LoggingMiddleware(log_format=config.log_format))
    return server
