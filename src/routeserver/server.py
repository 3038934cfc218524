"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         REQUEST FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(_process_connection, conn)                       │
    │        │                                                             │
    │        ▼            (worker thread, per request on the connection)   │
    │   Connection.read_request()      raw bytes                           │
    │        │                                                             │
    │   RequestParser.parse()          HTTPParseError → 400/405/413/505    │
    │        │                                                             │
    │   MiddlewarePipeline             LoggingMiddleware, ...              │
    │        │                                                             │
    │   Router.handle(request, state)  match → RequestContext → handler    │
    │        │                         HandlerError → error_response       │
    │        │                         anything else raised → 500          │
    │        ▼                                                             │
    │   Connection.send_response()     body omitted for HEAD               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    STARTING ──bind ok──► RUNNING ──stop() / SIGINT / SIGTERM──► STOPPED
        │
        └──bind fails──► OSError (fatal in the CLI)

Stopping stops accepting, lets queued and in-flight connections finish,
then stops the workers.

=============================================================================
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    Router, internal_error,
)
from .middleware import Middleware, MiddlewarePipeline
from .state import SharedState


logger = logging.getLogger(__name__)


class ServerState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class HTTPServer:
    """
    Threaded HTTP/1.1 server dispatching through a Router.

    =========================================================================
    USAGE
    =========================================================================

        router = Router()

        @router.get("/")
        def index(ctx):
            return "Hello World!"

        server = HTTPServer(ServerConfig(port=8080), router=router)
        server.use(LoggingMiddleware())
        server.run()            # blocks until stop() or Ctrl+C

    The SharedState passed in (or created from config.app_name) is the one
    every handler sees as ctx.state.

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        state: Optional[SharedState] = None,
        router: Optional[Router] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.state = state or SharedState(app_name=self.config.app_name)
        self.server_state = ServerState.STARTING

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router or Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._running_event = threading.Event()

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self.server_state == ServerState.RUNNING

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Bind the socket and start the workers without blocking.

        Raises:
            OSError: The address could not be bound. The server stays
                     STARTING and nothing is left running.
        """
        if self.server_state != ServerState.STARTING:
            raise RuntimeError(f"Server cannot start from state {self.server_state.value}")

        self._socket_server.bind()
        self._handler = self._middleware.wrap(self._dispatch)
        self._thread_pool.start()

        self.server_state = ServerState.RUNNING
        self._running_event.set()

        host, port = self.address
        logger.info(
            f"{self.config.server_name} running on http://{host}:{port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers, "
            f"{len(self._router)} routes)"
        )
        logger.debug(f"Registered routes:\n{self._router.describe()}")

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start and serve until stopped (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        setup_logging(self.config)
        self.start()

        try:
            self._socket_server.serve(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to shut down. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_running(self, timeout: Optional[float] = None) -> bool:
        return self._running_event.wait(timeout)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        self.server_state = ServerState.STOPPED
        self._running_event.clear()
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a new connection to the pool. 503 if it is full or the wait runs past timeout."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            block=False,
            on_stale=lambda: self._reject(conn, "waited too long for a worker"),
        )

        if not submitted:
            self._reject(conn, "thread pool full")

    def _reject(self, conn: Connection, reason: str):
        """Answer 503 and close a connection no worker will process."""
        logger.warning(f"[{conn.id}] Rejecting connection from {conn.client_ip}: {reason}")
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self.server_state == ServerState.RUNNING:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                conn.mark_processing()
                response = self.handle_request(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                data = response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                )
                if not conn.send_response(data):
                    break

                if not keep_alive or response.headers.get("Connection") == "close":
                    break

                conn.set_keep_alive()

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through middleware and router.

        Never raises: an exception escaping the handler chain is logged
        with its traceback and answered with a generic 500, affecting
        only this request.
        """
        handler = self._handler or self._middleware.wrap(self._dispatch)
        try:
            return handler(request)
        except Exception as e:
            logger.exception(f"Unhandled error for {request.method} {request.path}: {e}")
            return internal_error()

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        return self._router.handle(request, self.state, self.config.payload_limit)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error answered before any handler ran; the connection closes after it."""
        response = (ResponseBuilder()
            .status(status)
            .text(message)
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def setup_logging(config: ServerConfig):
    """Configure root logging from config.log_level."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("routeserver").setLevel(level)
