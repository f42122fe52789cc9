"""Tests for JSON log rendering and request id propagation."""

from __future__ import annotations

import json
import logging

from authgate.core.logger import REQUEST_ID_HEADER, JSONFormatter, RequestIdFilter


def _record(msg="hello %s", args=("world",), **extra):
    record = logging.LogRecord("authgate.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_renders_core_fields(self):
        record = _record()
        RequestIdFilter().filter(record)
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["name"] == "authgate.test"
        assert payload["request_id"] is None
        assert payload["time"].endswith("+00:00")

    def test_copies_whitelisted_extras_only(self):
        record = _record(event="auth.login", account_id=7, password="hunter2")
        payload = json.loads(JSONFormatter().format(record))
        assert payload["event"] == "auth.login"
        assert payload["account_id"] == 7
        assert "password" not in payload

    def test_includes_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            record = logging.LogRecord(
                "authgate.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in payload["exc_info"]


class TestRequestId:
    def test_header_is_echoed(self, client):
        resp = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "req-123"})
        assert resp.headers[REQUEST_ID_HEADER] == "req-123"

    def test_correlation_header_is_accepted(self, client):
        resp = client.get("/api/v1/health", headers={"X-Correlation-ID": "corr-9"})
        assert resp.headers[REQUEST_ID_HEADER] == "corr-9"

    def test_generated_when_absent(self, client):
        resp = client.get("/api/v1/health")
        assert len(resp.headers[REQUEST_ID_HEADER]) == 36

    def test_each_request_gets_its_own_id_inside_one_app_context(self, app, client):
        with app.app_context():
            first = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "first"})
            second = client.get("/api/v1/health")
            third = client.get("/api/v1/health")

        assert first.headers[REQUEST_ID_HEADER] == "first"
        assert second.headers[REQUEST_ID_HEADER] != "first"
        assert second.headers[REQUEST_ID_HEADER] != third.headers[REQUEST_ID_HEADER]
