"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from statiq.http.response import HTTPResponse
from statiq.middleware import LoggingMiddleware, Middleware, MiddlewarePipeline

from helpers import make_request


class Recorder(Middleware):
    """Appends its tag before and after calling next."""

    def __init__(self, tag, calls):
        self.tag = tag
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.tag}:in")
        response = next(request)
        self.calls.append(f"{self.tag}:out")
        return response


def ok_handler(request):
    return HTTPResponse(body=b"hello")


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_order(self):
        """Test that the first middleware added runs outermost."""
        calls = []
        pipeline = MiddlewarePipeline().use(Recorder("a", calls), Recorder("b", calls))

        response = pipeline.wrap(ok_handler)(make_request("/"))

        assert response.body == b"hello"
        assert calls == ["a:in", "b:in", "b:out", "a:out"]
        assert len(pipeline) == 2

    def test_empty(self):
        """Test that an empty pipeline is the handler itself."""
        assert MiddlewarePipeline().wrap(ok_handler) is ok_handler

    def test_name(self):
        """Test the default name."""
        assert Recorder("a", []).name == "Recorder"


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_text_format(self, caplog):
        """Test the text access line."""
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="statiq.access"):
            middleware(make_request("/a.txt", query="v=1", user_agent="pytest"), ok_handler)

        line = caplog.records[-1].getMessage()
        assert '"GET /a.txt?v=1" 200 5' in line
        assert line.startswith("127.0.0.1 - - [")
        assert line.endswith('"pytest"')

    def test_json_format(self, caplog):
        """Test the JSON access line."""
        middleware = LoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="statiq.access"):
            middleware(make_request("/a.txt", x_request_id="abc123"), ok_handler)

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["request_id"] == "abc123"
        assert entry["method"] == "GET"
        assert entry["path"] == "/a.txt"
        assert entry["status_code"] == 200
        assert entry["content_length"] == 5
        assert entry["user_agent"] == "-"

    def test_request_id_header(self):
        """Test X-Request-ID propagation and generation."""
        middleware = LoggingMiddleware()

        reused = middleware(make_request("/", x_request_id="fixed"), ok_handler)
        generated = middleware(make_request("/"), ok_handler)

        assert reused.headers["X-Request-ID"] == "fixed"
        assert len(generated.headers["X-Request-ID"]) == 8

    def test_request_id_disabled(self):
        """Test that the header can be turned off."""
        response = LoggingMiddleware(include_request_id=False)(make_request("/"), ok_handler)

        assert "X-Request-ID" not in response.headers

    def test_head_logs_content_length(self, caplog):
        """Test that the logged size comes from Content-Length."""
        def head_handler(request):
            return HTTPResponse(headers={"Content-Length": "2048"}, body=b"")

        with caplog.at_level(logging.INFO, logger="statiq.access"):
            LoggingMiddleware(log_format="json")(make_request("/", method="HEAD"), head_handler)

        assert json.loads(caplog.records[-1].getMessage())["content_length"] == 2048

    def test_skip_paths(self, caplog):
        """Test paths excluded from the access log."""
        with caplog.at_level(logging.INFO, logger="statiq.access"):
            LoggingMiddleware(skip_paths=["/health"])(make_request("/health"), ok_handler)

        assert caplog.records == []

    def test_errors_logged_and_raised(self, caplog):
        """Test that handler exceptions propagate."""
        def failing(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="statiq.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(make_request("/x"), failing)

        assert "RuntimeError: boom" in caplog.text

    def test_invalid_format(self):
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")
