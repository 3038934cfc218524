"""
Integration tests: the demo application over real sockets.
"""

import json
import socket
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest


@pytest.fixture
def client(app_server):
    with httpx.Client(base_url=app_server.base_url, timeout=5.0) as client:
        yield client


def raw_exchange(port: int, data: bytes) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=5.0) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestBasicRoutes:

    @pytest.mark.parametrize("path, body", [
        ("/", "Hello World!"),
        ("/hey", "Hey there!"),
        ("/root", "/root"),
        ("/appapp", "appapp"),
        ("/api/testtest", "testtest"),
        ("/app", "Hello app/index"),
        ("/app/", "Hello app/index"),
        ("/app/index.html", "Hello app/index.html"),
        ("/app_name", "Hello testapp!"),
        ("/show/7", "show_id: 7"),
        ("/test/a/b/", "Test values a b a b"),
        ("/alice/7/index.html", "Welcome alice! id: 7"),
    ])
    def test_get(self, client, path, body):
        response = client.get(path)

        assert response.status_code == 200
        assert response.text == body
        assert response.headers["content-type"].startswith("text/plain")

    def test_echo(self, client):
        response = client.post("/echo", content=b"some body")

        assert response.status_code == 200
        assert response.content == b"some body"

    def test_return_json(self, client):
        response = client.get("/return_json")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"name": "user"}

    def test_server_headers(self, client):
        response = client.get("/hey")

        assert response.headers["server"] == "routeserver/1.0"
        assert "date" in response.headers
        assert response.headers["x-request-id"]


class TestPathParameters:

    def test_non_numeric_id(self, client):
        assert client.get("/show/abc").status_code == 400
        assert client.get("/alice/x/index.html").status_code == 400

    def test_test_values_needs_trailing_slash(self, client):
        assert client.get("/test/a/b").status_code == 404

    def test_percent_encoded_param(self, client):
        assert client.get("/caf%C3%A9/1/index.html").text == "Welcome café! id: 1"

    def test_encoded_slash_stays_in_param(self, app_server):
        data = raw_exchange(
            app_server.port,
            b"GET /a%2Fb/7/index.html HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 200 OK")
        assert data.endswith(b"Welcome a/b! id: 7")


class TestSharedState:

    def test_counter_increments(self, client):
        first = client.get("/mutable_state").text
        second = client.post("/mutable_state").text

        assert first == "Request number: 1"
        assert second == "Request number: 2"

    def test_concurrent_requests_get_distinct_numbers(self, app_server):
        def fetch(_):
            response = httpx.get(f"{app_server.base_url}/mutable_state", timeout=10.0)
            return int(response.text.rsplit(" ", 1)[1])

        with ThreadPoolExecutor(max_workers=8) as pool:
            numbers = list(pool.map(fetch, range(50)))

        assert sorted(numbers) == list(range(1, 51))


class TestJsonInfo:

    def test_valid(self, client):
        response = client.post("/json_info", json={"username": "alice"})

        assert response.status_code == 200
        assert response.text == "Welcome alice!"

    def test_content_type_not_required(self, client):
        response = client.post("/json_info", content=b'{"username": "bob"}')
        assert response.text == "Welcome bob!"

    @pytest.mark.parametrize("body", [
        b"not json",
        b'{"username": 1}',
        b'{"name": "alice"}',
        b"",
    ])
    def test_invalid_is_conflict(self, client, body):
        response = client.post("/json_info", content=body)

        assert response.status_code == 409
        assert response.content == b""

    def test_over_limit_is_conflict(self, client):
        payload = json.dumps({"username": "a" * 5000}).encode()

        response = client.post("/json_info", content=payload)

        assert response.status_code == 409


class TestErrors:

    def test_index_error(self, client):
        response = client.get("/index_error")

        assert response.status_code == 500
        assert response.text == "my error: test"

    @pytest.mark.parametrize("path, status, body", [
        ("/400", 400, "bad request"),
        ("/408", 504, "timeout"),
        ("/500", 500, "internal error"),
    ])
    def test_html_errors(self, client, path, status, body):
        response = client.get(path)

        assert response.status_code == status
        assert response.text == body
        assert response.headers["content-type"].startswith("text/html")


class TestDefaultHandler:

    def test_unknown_get_is_404(self, client):
        assert client.get("/does/not/exist").status_code == 404

    def test_unknown_post_is_405(self, client):
        response = client.post("/does/not/exist")

        assert response.status_code == 405
        assert "allow" not in response.headers

    def test_wrong_method_lists_allowed(self, client):
        response = client.get("/echo")

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"

        response = client.put("/mutable_state")
        assert response.headers["allow"] == "GET, POST"

    def test_head_registered_as_not_allowed(self, client):
        for path in ("/appapp", "/api/testtest"):
            response = client.head(path)

            assert response.status_code == 405
            assert response.headers["allow"] == "GET"
            assert response.content == b""


class TestConnectionHandling:

    def test_keep_alive_reuses_connection(self, app_server):
        request = b"GET /hey HTTP/1.1\r\nHost: test\r\n\r\n"
        closing = b"GET /root HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n"

        data = raw_exchange(app_server.port, request + closing)

        assert data.count(b"HTTP/1.1 200 OK") == 2
        assert data.endswith(b"/root")

    def test_head_has_no_body(self, app_server):
        data = raw_exchange(
            app_server.port,
            b"HEAD /appapp HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n",
        )

        head, _, body = data.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 405 Method Not Allowed")
        assert b"Content-Length: 18" in head
        assert body == b""

    def test_malformed_request_line(self, app_server):
        data = raw_exchange(app_server.port, b"GARBAGE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request")
        assert b"Connection: close" in data

    def test_unsupported_version(self, app_server):
        data = raw_exchange(app_server.port, b"GET / HTTP/3.0\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 HTTP Version Not Supported")
