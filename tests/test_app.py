"""
End-to-end tests of the host application.

Requests go through the Flask test client, so they cross the JSON-P stage
installed around ``app.wsgi_app`` exactly as in production.
"""

import json

import pytest

from jsonpad.app import create_app
from jsonpad.config import Config
from jsonpad.middleware.jsonp import JSONPMiddleware


class TunnellingConfig(Config):
    JSONP_RETURN_ERRORS = True
    JSONP_CARRIAGE_RETURN = False


class CarriageReturnConfig(Config):
    JSONP_RETURN_ERRORS = False
    JSONP_CARRIAGE_RETURN = True


@pytest.fixture
def client():
    return create_app(TunnellingConfig).test_client()


def unpad(data: bytes, prefix: bytes) -> dict:
    assert data.startswith(prefix)
    assert data.endswith(b")")
    return json.loads(data[len(prefix):-1])


class TestAppWiring:
    """The JSON-P stage is the outermost WSGI layer."""

    def test_stage_installed(self) -> None:
        app = create_app(TunnellingConfig)
        assert isinstance(app.wsgi_app, JSONPMiddleware)
        assert app.wsgi_app.options.return_errors is True


class TestHealthEndpoint:
    """Tests for GET /healthz."""

    def test_plain_json_without_callback(self, client) -> None:
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.headers["Content-Type"] == "application/json"
        assert response.get_json()["code"] == "HEALTHY"

    def test_padded_with_callback(self, client) -> None:
        response = client.get("/healthz?callback=onHealth")
        assert response.status_code == 200
        assert response.headers["Content-Type"] == "application/javascript"
        assert int(response.headers["Content-Length"]) == len(response.get_data())
        assert unpad(response.get_data(), b"onHealth(")["ok"] is True


class TestEchoEndpoint:
    """The application only sees the sanitized query string."""

    def test_callback_and_cache_buster_hidden(self, client) -> None:
        response = client.get("/echo?a=1&callback=cb&_=1700000000&b=2")
        payload = unpad(response.get_data(), b"cb(")
        assert payload["query_string"] == "a=1&b=2"
        assert payload["args"] == {"a": ["1"], "b": ["2"]}

    def test_cache_buster_hidden_without_callback(self, client) -> None:
        response = client.get("/echo?_=1&q=x")
        assert response.get_json()["query_string"] == "q=x"


class TestItemsEndpoint:
    """Tests for GET /items/<item_id>."""

    def test_item_padded(self, client) -> None:
        response = client.get("/items/2?callback=showItem")
        assert response.status_code == 200
        item = unpad(response.get_data(), b"showItem(")
        assert item["name"] == "Fountain pen"

    def test_fields_selection(self, client) -> None:
        response = client.get("/items/1?fields=name,price")
        assert response.get_json() == {"name": "Notebook", "price": 4.5}

    def test_missing_item_tunnelled(self, client) -> None:
        """A 404 reaches script-tag callers as a 200 carrying the error."""
        response = client.get("/items/404?callback=cb")

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "application/javascript"
        envelope = unpad(response.get_data(), b"cb(null, ")
        assert envelope["statusCode"] == 404
        assert "json" in envelope["headers"]["Content-Type"]
        error = json.loads(envelope["body"])
        assert error["ok"] is False
        assert error["code"] == "NOT_FOUND"
        assert error["message"] == "Item '404' not found"

    def test_missing_item_without_callback(self, client) -> None:
        response = client.get("/items/404")
        assert response.status_code == 404
        assert response.get_json()["code"] == "NOT_FOUND"

    def test_invalid_fields_tunnelled(self, client) -> None:
        response = client.get("/items/1?fields=colour&callback=cb")
        envelope = unpad(response.get_data(), b"cb(null, ")
        assert envelope["statusCode"] == 422

    def test_errors_keep_status_when_tunnelling_disabled(self) -> None:
        """The JSON error body is padded but its 404 stays visible."""
        client = create_app(CarriageReturnConfig).test_client()
        response = client.get("/items/404?callback=cb")
        assert response.status_code == 404
        assert unpad(response.get_data(), b"cb(")["code"] == "NOT_FOUND"


class TestCarriageReturn:
    """Plain JSON gains a trailing newline when configured."""

    def test_newline_appended(self) -> None:
        client = create_app(CarriageReturnConfig).test_client()
        plain = create_app(TunnellingConfig).test_client().get("/items/3").get_data()

        response = client.get("/items/3")

        assert response.get_data() == plain + b"\n"
        assert int(response.headers["Content-Length"]) == len(plain) + 1
        assert response.headers["Content-Type"] == "application/json"
