"""Request and response value tests."""

import asyncio

import orjson
import pytest

from folio.core.request import Headers, QueryParams, Request
from folio.core.response import (
    HTMLResponse,
    JSONResponse,
    Response,
    error_response,
    to_response,
)


class TestHeaders:
    """Test header access."""

    def test_case_insensitive(self):
        """Test lookups ignore case."""
        headers = Headers({"Content-Type": "text/html"})
        assert headers["content-type"] == "text/html"
        assert "CONTENT-TYPE" in headers
        assert headers.get("X-Missing", "d") == "d"

    def test_asgi_pairs(self):
        """Test byte pairs from ASGI scopes decode."""
        headers = Headers([(b"host", b"example.com")])
        assert headers.to_dict() == {"host": "example.com"}


class TestQueryParams:
    """Test query string access."""

    def test_parse(self):
        """Test single, repeated and typed values."""
        query = QueryParams("page=2&tag=a&tag=b&draft=yes&empty=")
        assert query.get("page") == "2"
        assert query.get_int("page") == 2
        assert query.get_list("tag") == ["a", "b"]
        assert query.get_bool("draft") is True
        assert query.get("empty") == ""
        assert query.to_dict()["tag"] == ["a", "b"]

    def test_bad_int(self):
        """Test non-numeric values fall back to the default."""
        assert QueryParams("page=x").get_int("page", 1) == 1


class TestRequest:
    """Test the request value."""

    def test_build(self):
        """Test building from a target with a query string."""
        request = Request.build("get", "/blog/hello?page=2", query={"sort": "new"}, headers={"Host": "example.com"})
        assert request.method == "GET"
        assert request.path == "/blog/hello"
        assert request.query.to_dict() == {"page": "2", "sort": "new"}
        assert request.url_root == "http://example.com"
        assert request.url == "http://example.com/blog/hello?page=2&sort=new"

    def test_explicit_query_wins(self):
        """Test explicit query values replace those in the target."""
        request = Request.build("GET", "/?page=1", query={"page": "3"})
        assert request.query.get_list("page") == ["3"]

    def test_host_default(self):
        """Test a missing Host header falls back to localhost."""
        assert Request.build("GET", "/").url_root == "http://localhost"

    def test_immutable(self):
        """Test requests cannot be modified."""
        request = Request.build("GET", "/")
        with pytest.raises(AttributeError):
            request.path = "/other"

    def test_body(self):
        """Test text and JSON bodies."""
        request = Request.build("POST", "/", body='{"title": "Hi"}', headers={"Content-Type": "application/json"})
        assert request.text() == '{"title": "Hi"}'
        assert request.json() == {"title": "Hi"}
        assert request.content_type == "application/json"
        assert Request.build("POST", "/").json() is None

    def test_from_scope(self):
        """Test ASGI scopes convert."""
        scope = {
            "type": "http",
            "method": "POST",
            "path": "//blog/",
            "query_string": b"page=4",
            "headers": [(b"host", b"site.test")],
            "scheme": "https",
            "client": ("10.0.0.1", 1234),
        }
        request = Request.from_scope(scope, b"data")
        assert request.method == "POST"
        assert request.normalized_path == "/blog"
        assert request.query.get_int("page") == 4
        assert request.is_secure
        assert request.client == ("10.0.0.1", 1234)
        assert request.body == b"data"


class TestResponses:
    """Test response conversion."""

    @pytest.mark.parametrize(
        "result, status, content_type",
        [
            ("<p>x</p>", 200, "text/html; charset=utf-8"),
            (b"\x00\x01", 200, "application/octet-stream"),
            ({"a": 1}, 200, "application/json"),
            ([1, 2], 200, "application/json"),
            (None, 204, "text/plain; charset=utf-8"),
        ],
    )
    def test_to_response(self, result, status, content_type):
        """Test handler results map to responses."""
        response = to_response(result)
        assert response.status_code == status
        assert response.headers["Content-Type"] == content_type

    def test_passthrough(self):
        """Test responses are returned unchanged."""
        response = HTMLResponse("x", status_code=201)
        assert to_response(response) is response

    def test_error_response(self):
        """Test error bodies."""
        response = error_response(400, "Invalid route parameters", {"errors": {"id": ["bad"]}})
        assert response.status_code == 400
        assert orjson.loads(response.body) == {"error": "Invalid route parameters", "errors": {"id": ["bad"]}}

    def test_json_default(self):
        """Test values orjson cannot encode natively are stringified."""
        from datetime import date
        from decimal import Decimal

        body = orjson.loads(JSONResponse({"d": date(2024, 5, 1), "n": Decimal("1.5")}).body)
        assert body == {"d": "2024-05-01", "n": "1.5"}

    def test_send(self):
        """Test the ASGI send sequence."""
        sent = []

        async def send(message):
            sent.append(message)

        asyncio.run(Response("hi", status_code=202).send(send))
        assert sent[0]["status"] == 202
        assert (b"content-length", b"2") in sent[0]["headers"]
        assert sent[1]["body"] == b"hi"
