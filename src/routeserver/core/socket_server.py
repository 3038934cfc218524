"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Every accepted client
socket is wrapped in a Connection and handed to a callback; the HTTP
layer does the rest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            socket() + SO_REUSEADDR + TCP_NODELAY          │
    │        │             bind(host, port)    ← OSError if taken         │
    │        │             listen(backlog)                                 │
    │        ▼                                                             │
    │    serve(callback)   install SIGINT/SIGTERM (main thread only)      │
    │        │                                                             │
    │        └──► while running:                                           │
    │                accept()          1s timeout to re-check running      │
    │                Connection(...)                                       │
    │                callback(conn)    HTTPServer submits to the pool      │
    │                                                                      │
    │    shutdown()        running = False, wakes wait_for_shutdown()     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Binding is separate from serving so a bind failure surfaces before the
server reports itself as running.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server.

        server = SocketServer(config)
        server.bind()                     # raises OSError if the port is taken
        server.serve(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._original_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port), or the configured one before bind()."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        # accept() wakes every second to check the running flag
        sock.settimeout(1.0)
        return sock

    def bind(self):
        """
        Create, bind and listen.

        Raises:
            OSError: Address in use, permission denied, bad host.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        self._running = True
        self._shutdown_event.clear()
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def serve(self, connection_handler: Callable[[Connection], None]):
        """Accept connections until shutdown(). Binds first if needed."""
        if self._socket is None:
            self.bind()

        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    # =========================================================================
    # SIGNALS
    # =========================================================================
    #
    # SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) start a graceful
    # shutdown. signal.signal() only works on the main thread, so a server
    # running in a background thread (tests, embedding) skips this.
    #
    # =========================================================================

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def shutdown(self):
        """Stop accepting. Safe to call from any thread, more than once."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._shutdown_event.wait(timeout)
