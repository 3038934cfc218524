"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   binds, listens, runs the accept loop                │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │ one Connection per client
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool     bounded queue + workers, one connection per worker  │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection     buffered reads, keep-alive, graceful close          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
