"""
=============================================================================
ROUTESERVER - ROUTING AND REQUEST HANDLING ON RAW SOCKETS
=============================================================================

A small HTTP/1.1 server built on the standard library's socket and
threading modules, with a router that dispatches by method and path
pattern to handler functions.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           routeserver                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   core/            sockets, connections, worker pool                │
    │   http/            request parsing, responses, routing, context     │
    │   middleware/      request pipeline, access logging                 │
    │   state.py         SharedState handed to every handler              │
    │   config.py        ServerConfig (defaults, env, validation)         │
    │   server.py        HTTPServer lifecycle                             │
    │   app.py           demo application                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from routeserver import HTTPServer, Router, ServerConfig

    router = Router()

    @router.get("/show/{id}")
    def show(ctx):
        return f"show_id: {ctx.uint_param('id')}"

    HTTPServer(ServerConfig(port=8080), router=router).run()

Or run the bundled demo:

    python -m routeserver --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .state import Counter, SharedState
from .http import (
    HandlerError, JsonConfig, RequestContext, Router, Scope,
)
from .server import HTTPServer, ServerState
from .app import create_app

__all__ = [
    "HTTPServer",
    "ServerState",
    "ServerConfig",
    "Router",
    "Scope",
    "RequestContext",
    "JsonConfig",
    "HandlerError",
    "SharedState",
    "Counter",
    "create_app",
    "__version__",
]
