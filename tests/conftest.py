"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routeserver import HTTPServer, ServerConfig, SharedState, create_app
from routeserver.http import HTTPRequest, RequestContext


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /show/42?verbose=1&tag=a&tag=b HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"username": "alice"}'
    return (
        b"POST /json_info HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def state() -> SharedState:
    return SharedState(app_name="testapp")


@pytest.fixture
def make_context(state: SharedState):
    """Build a RequestContext without going through the router."""

    def factory(method="GET", path="/", params=None, body=b"", headers=None, **kwargs):
        request = HTTPRequest(method=method, path=path, body=body, headers=headers or {})
        return RequestContext(request=request, params=params or {}, state=state, **kwargs)

    return factory


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=8080,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs a server in a background thread for integration tests."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self):
        """Start server in background thread and wait until it accepts."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_running(timeout=5.0):
            raise RuntimeError("Server failed to start")

        for _ in range(50):  # 5 seconds max
            try:
                with socket.create_connection(("127.0.0.1", self.port), timeout=1.0):
                    return
            except ConnectionRefusedError:
                time.sleep(0.1)

        raise RuntimeError("Server failed to accept connections")

    def stop(self):
        """Stop the server and wait for the thread."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def app_server(free_port: int) -> Generator[ServerThread, None, None]:
    """The demo application on a free port."""
    server = create_app(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        min_workers=4,
        max_workers=16,
        keep_alive_timeout=1.0,
        log_level="WARNING",
        app_name="testapp",
    ))

    thread = ServerThread(server)
    thread.start()

    yield thread

    thread.stop()
