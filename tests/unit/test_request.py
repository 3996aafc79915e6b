"""
Unit tests for HTTP request parsing.
"""

import pytest

from helloserver.http.request import HTTPRequest, RequestParser, HTTPParseError
from helloserver.http.status_codes import HTTPStatus


@pytest.fixture
def parser() -> RequestParser:
    return RequestParser()


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, parser, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/hello"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, parser, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parser.parse(sample_get_request)

        assert request.headers["host"] == "localhost:8080"
        assert request.headers["accept"] == "text/plain"
        assert request.user_agent == "pytest"
        assert request.is_keep_alive is True

    def test_parse_query_string(self, parser, sample_get_request: bytes):
        request = parser.parse(sample_get_request)

        assert request.query_string == "lang=en&lang=fr"

    def test_parse_post_with_body(self, parser, sample_post_request: bytes):
        """Test parsing a POST request with a body."""
        request = parser.parse(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/hello"
        assert request.body == b"name=world"
        assert request.is_keep_alive is False

    def test_parse_path_with_special_chars(self, parser):
        """Test URL-encoded path parsing."""
        request = parser.parse(b"GET /greet%20me?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n")

        assert request.path == "/greet me"
        assert request.query_string == "q=hello%20world"

    def test_parse_double_slash_path(self, parser):
        """A leading "//" is a path, not a host name."""
        request = parser.parse(b"GET //hello?x=1 HTTP/1.1\r\nHost: test\r\n\r\n")

        assert request.path == "//hello"
        assert request.query_string == "x=1"

    def test_parse_absolute_uri(self, parser):
        request = parser.parse(b"GET http://example.com/hello HTTP/1.1\r\nHost: example.com\r\n\r\n")

        assert request.path == "/hello"

    def test_dot_segments_left_for_router(self, parser):
        """Dot segments pass through; the router redirects to the clean path."""
        request = parser.parse(b"GET /a/../hello HTTP/1.1\r\nHost: test\r\n\r\n")

        assert request.path == "/a/../hello"

    @pytest.mark.parametrize("method", ["PROPFIND", "BREW", "get", "M-SEARCH", "X_CUSTOM"])
    def test_any_method_token(self, parser, method):
        """Extension and lowercase methods are valid tokens."""
        raw = method.encode() + b" /hello HTTP/1.1\r\nHost: test\r\n\r\n"

        assert parser.parse(raw).method == method

    @pytest.mark.parametrize("raw", [
        b"GET\r\nHost: test\r\n\r\n",
        b"GE(T /hello HTTP/1.1\r\n\r\n",
        b"GET /hello\r\n\r\n",
        b"GET  /hello HTTP/1.1\r\n\r\n",
        b"NOT A REQUEST\r\n\r\n",
    ])
    def test_parse_invalid_request_line(self, parser, raw):
        """Test handling of malformed request line."""
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST

    def test_parse_unsupported_version(self, parser):
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET /hello HTTP/2.0\r\nHost: test\r\n\r\n")

        assert exc_info.value.status_code == HTTPStatus.HTTP_VERSION_NOT_SUPPORTED

    def test_parse_missing_terminator(self, parser):
        with pytest.raises(HTTPParseError):
            parser.parse(b"GET /hello HTTP/1.1\r\nHost: test\r\n")

    @pytest.mark.parametrize("line", [b"No colon here", b"Bad Name: x", b": empty name"])
    def test_parse_malformed_header(self, parser, line):
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET /hello HTTP/1.1\r\n" + line + b"\r\n\r\n")

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST

    def test_parse_missing_headers(self, parser):
        """Test parsing request with no headers."""
        request = parser.parse(b"GET / HTTP/1.1\r\n\r\n")

        assert request.path == "/"
        assert request.headers == {}

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == HTTPStatus.PAYLOAD_TOO_LARGE

    def test_http_version_keep_alive(self, parser):
        """HTTP/1.0 closes by default, HTTP/1.1 stays open."""
        assert parser.parse(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n").is_keep_alive is False
        assert parser.parse(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n").is_keep_alive is True
        assert parser.parse(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n").is_keep_alive is True
        assert parser.parse(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n").is_keep_alive is False

    def test_content_length_handling(self, parser):
        """Body is cut to Content-Length."""
        request = parser.parse(b"POST / HTTP/1.1\r\nContent-Length: 4\r\n\r\ntest body")

        assert request.body == b"test"

    @pytest.mark.parametrize("value", [b"abc", b"-1", b"1.5"])
    def test_invalid_content_length(self, parser, value):
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n")

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST

    def test_short_body(self, parser):
        with pytest.raises(HTTPParseError):
            parser.parse(b"POST / HTTP/1.1\r\nContent-Length: 20\r\n\r\nshort")

    def test_repeated_and_folded_headers(self, parser):
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"Accept: text/plain\r\n"
            b"ACCEPT: text/html\r\n"
            b"X-Long: first\r\n"
            b"  second\r\n"
            b"\r\n"
        )
        request = parser.parse(raw)

        assert request.headers["accept"] == "text/plain, text/html"
        assert request.headers["x-long"] == "first second"

    def test_continuation_without_header(self, parser):
        with pytest.raises(HTTPParseError):
            parser.parse(b"GET / HTTP/1.1\r\n  stray\r\n\r\n")


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_defaults(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.version == "HTTP/1.1"
        assert request.user_agent == ""
        assert request.path_params == {}
