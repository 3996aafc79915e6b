"""
Unit tests for the greeting handler and Service wiring.
"""

from datetime import datetime, timezone

import pytest

from helloserver import Service, ServerConfig, new_service
from helloserver.handlers import hello, GREETING
from helloserver.http.request import HTTPRequest
from helloserver.http.status_codes import HTTPStatus


class TestHelloHandler:
    """Tests for the hello handler."""

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    def test_hello(self, method):
        response = hello(HTTPRequest(method=method, path="/hello"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"hello\n"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_greeting(self):
        assert GREETING == "hello\n"


class TestService:
    """Tests for Service construction (nothing is bound)."""

    def test_new_service(self):
        before = datetime.now(timezone.utc)
        service = new_service("127.0.0.1", 9000)
        after = datetime.now(timezone.utc)

        assert service.address == "127.0.0.1:9000"
        assert service.config.read_timeout == 5.0
        assert service.config.write_timeout == 5.0
        assert before <= service.launched <= after
        assert service.launched.tzinfo is not None

    def test_defaults(self):
        service = Service()

        assert service.address == "localhost:8080"
        assert service.bound_address is None
        assert service.is_running is False
        assert service.uptime >= 0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            Service(ServerConfig(port=70000))

    def test_single_route(self):
        router = new_service().router

        route, params = router.match("GET", "/hello")
        assert route.handler is hello
        assert params == {}
        assert router.match("PROPFIND", "/hello")[0] is route
        assert router.match("GET", "/") is None
