"""
Tests for the health checks, the /metrics endpoint and request logging.
"""

import json
import logging

from fastapi.testclient import TestClient

from sms_gateway.logging_utils import GatewayJsonFormatter, request_id_ctx
from sms_gateway.main import app
from sms_gateway.models import Conversation
from sms_gateway.storage import engine


class TestHealth:
    """Test /health/live and /health/ready."""

    def test_liveness(self, client):
        """Liveness is 200 once the app is up."""
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness_with_schema(self, client):
        """Readiness is 200 when both store tables exist."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_missing_table(self, client):
        """Readiness is 503 and names the missing table."""
        Conversation.__table__.drop(bind=engine)

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert "conversations" in body["reason"]

    def test_startup_names_channel(self, caplog):
        """The startup line names the channel and its methods."""
        with caplog.at_level(logging.INFO, logger="sms_gateway.main"):
            with TestClient(app):
                pass

        started = [r.getMessage() for r in caplog.records if r.name == "sms_gateway.main"]
        assert any("sms_getter_package" in m and "getConversations" in m for m in started)


class TestMetrics:
    """Test /metrics."""

    def test_exposes_channel_outcomes(self, seeded_client, grant):
        """Channel calls are counted by method and outcome."""
        seeded_client.post("/channel/getAllSms")
        seeded_client.post("/channel/getConversationMessages", json={"threadId": ""})
        seeded_client.post("/channel/noSuchMethod")

        response = seeded_client.get("/metrics")

        assert response.status_code == 200
        text = response.text
        assert 'channel_calls_total{method="getAllSms",outcome="success"}' in text
        assert 'channel_calls_total{method="getConversationMessages",outcome="INVALID_THREAD_ID"}' in text
        assert 'channel_calls_total{method="noSuchMethod",outcome="not_implemented"}' in text
        assert 'store_queries_total{table="sms"}' in text

    def test_responses_carry_request_id(self, client):
        """Every response is tagged with the request id used in its log line."""
        first = client.get("/health/live").headers["x-request-id"]
        second = client.get("/health/live").headers["x-request-id"]

        assert first and second and first != second

    def test_caller_request_id_is_reused(self, client):
        """An X-Request-ID sent by the caller comes back unchanged."""
        response = client.get("/health/live", headers={"X-Request-ID": "host-42"})

        assert response.headers["x-request-id"] == "host-42"


class TestLogFormat:
    """Test the JSON log line layout."""

    def test_json_fields(self):
        """Each line carries ts, level, name and message, plus the current request id."""
        formatter = GatewayJsonFormatter("%(ts)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "sms_gateway.gateway", logging.WARNING, __file__, 1, "Channel call failed", None, None
        )

        token = request_id_ctx.set("req-1")
        try:
            line = json.loads(formatter.format(record))
        finally:
            request_id_ctx.reset(token)

        assert line["level"] == "WARNING"
        assert line["name"] == "sms_gateway.gateway"
        assert line["message"] == "Channel call failed"
        assert line["request_id"] == "req-1"
        assert line["ts"].endswith("Z")

    def test_no_request_id_outside_a_request(self):
        """Lines logged outside a request have no request_id field."""
        formatter = GatewayJsonFormatter("%(ts)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("sms_gateway", logging.INFO, __file__, 1, "started", None, None)

        line = json.loads(formatter.format(record))

        assert "request_id" not in line
