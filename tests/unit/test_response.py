"""
Unit tests for HTTP response building and handler return values.
"""

import pytest
import json

from pydantic import BaseModel

from routeserver.http.errors import BadRequest
from routeserver.http.responder import into_response
from routeserver.http.response import (
    APPLICATION_JSON,
    TEXT_PLAIN,
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    not_found,
    bad_request,
    method_not_allowed,
    conflict,
    internal_error,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.GATEWAY_TIMEOUT)
        assert response.status_line == "HTTP/1.1 504 Gateway Timeout"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: routeserver/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_without_body(self):
        """HEAD responses keep Content-Length but drop the body."""
        response = HTTPResponse(body=b"hello world")
        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 11\r\n" in result
        assert result.endswith(b"\r\n\r\n")

    def test_to_bytes_server_name(self):
        result = HTTPResponse().to_bytes(server_name="custom/2.0")
        assert b"Server: custom/2.0\r\n" in result

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"

    def test_set_body_encodes_text(self):
        response = HTTPResponse().set_body("héllo")
        assert response.body == "héllo".encode("utf-8")
        assert response.text == "héllo"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()
        assert response.status == HTTPStatus.CREATED

    def test_default_content_type(self):
        response = ResponseBuilder().body(b"raw").build()
        assert response.content_type == TEXT_PLAIN

    def test_json_body(self):
        """Test JSON body encoding."""
        data = {"name": "user", "age": 30}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(response.body) == data

    def test_html_body(self):
        """Test HTML body."""
        html = "<html><body>Hello</body></html>"
        response = ResponseBuilder().html(html).build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == html.encode()

    def test_text_body(self):
        """Test plain text body."""
        text = "Hello World!"
        response = ResponseBuilder().text(text).build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == text.encode()

    def test_close_connection(self):
        """Test connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        """Test fluent API chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers["X-Custom"] == "value"
        assert b'"key"' in response.body


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_ok(self):
        """Test ok() function."""
        response = ok("Hello")
        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello"

        response = ok({"msg": "hello"})
        assert b'"msg"' in response.body

    def test_not_found(self):
        """Test not_found() function."""
        response = not_found("Resource not found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert b"Resource not found" in response.body

    def test_bad_request(self):
        """Test bad_request() function."""
        response = bad_request("Invalid input")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert b"Invalid input" in response.body

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "POST"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"

        assert "Allow" not in method_not_allowed().headers

    def test_conflict_empty_body(self):
        response = conflict()
        assert response.status == HTTPStatus.CONFLICT
        assert response.body == b""

    def test_internal_error(self):
        """Test internal_error() function."""
        response = internal_error()
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal Server Error"


class NamedObject(BaseModel):
    name: str


class TestIntoResponse:
    """Tests for turning handler return values into responses."""

    def test_str(self):
        response = into_response("Hello World!")
        assert response.status == HTTPStatus.OK
        assert response.content_type == TEXT_PLAIN
        assert response.text == "Hello World!"

    def test_bytes(self):
        response = into_response(b"\x00\x01")
        assert response.content_type == TEXT_PLAIN
        assert response.body == b"\x00\x01"

    def test_pydantic_model(self):
        response = into_response(NamedObject(name="user"))
        assert response.content_type == APPLICATION_JSON
        assert json.loads(response.body) == {"name": "user"}

    def test_dict(self):
        response = into_response({"a": [1, 2]})
        assert response.content_type == APPLICATION_JSON
        assert json.loads(response.body) == {"a": [1, 2]}

    def test_response_passes_through(self):
        original = conflict()
        assert into_response(original) is original

    def test_handler_error(self):
        response = into_response(BadRequest("nope"))
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "nope"

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            into_response(42)


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that all statuses have phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.CONFLICT.phrase == "Conflict"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_every_status_has_phrase(self):
        for status in HTTPStatus:
            assert status.phrase != "Unknown"

    def test_status_categories(self):
        """Test status category helpers."""
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error

        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
        assert not HTTPStatus.OK.is_error


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        from datetime import datetime, timezone

        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
