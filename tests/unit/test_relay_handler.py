"""
tests/unit/test_relay_handler.py — handle() request pipeline.

Covers every response in the relay's status table plus the logging rules:
one outbound call only on the success path, and the shared secret never
appears in a log entry.
"""

from __future__ import annotations

import json
import traceback
from typing import Any
from unittest.mock import patch

import pytest
import requests

from order_notification.config import RelayConfig
from order_notification.delivery import DeliveryResult, SlackWebhookDeliverer
from order_notification.exceptions import DeliveryError
from order_notification.handler import handle
from order_notification.models import InboundRequest

SECRET = "test-secret-123"  # pragma: allowlist secret
WEBHOOK_URL = "https://hooks.slack.com/test"
REQUEST_ID = "test-request-id"


class FakeDeliverer:
    def __init__(
        self,
        result: DeliveryResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result or DeliveryResult(status_code=200, reason="OK", body="ok")
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def deliver(self, url: str, payload: dict[str, Any]) -> DeliveryResult:
        self.calls.append({"url": url, "payload": payload})
        if self.error is not None:
            raise self.error
        return self.result


class CapturingLog:
    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []

    def log(
        self,
        level: str,
        message: str,
        fields: dict[str, Any] | None = None,
        *,
        exc_info: BaseException | None = None,
    ) -> None:
        self.entries.append(
            {"level": level, "message": message, "fields": fields or {}, "exc_info": exc_info}
        )

    def levels(self) -> list[str]:
        return [entry["level"] for entry in self.entries]

    def find(self, message: str) -> dict[str, Any]:
        return next(entry for entry in self.entries if entry["message"] == message)


@pytest.fixture
def config() -> RelayConfig:
    return RelayConfig(shared_secret=SECRET, webhook_url=WEBHOOK_URL)


@pytest.fixture
def deliverer() -> FakeDeliverer:
    return FakeDeliverer()


@pytest.fixture
def log() -> CapturingLog:
    return CapturingLog()


def _request(body: str | None = None, token: str | None = SECRET, **headers: str) -> InboundRequest:
    all_headers = dict(headers)
    if token is not None:
        all_headers["authorization"] = f"Bearer {token}"
    return InboundRequest.build(method="POST", headers=all_headers, body=body)


def _run(request, config, deliverer, log):
    return handle(request, config=config, deliverer=deliverer, log=log, request_id=REQUEST_ID)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfigurationFault:
    @pytest.mark.parametrize(
        ("config", "missing"),
        [
            (RelayConfig(shared_secret=None, webhook_url=WEBHOOK_URL), "FLOW_SHARED_SECRET"),
            (RelayConfig(shared_secret=SECRET, webhook_url=None), "SLACK_WEBHOOK_URL"),
            (RelayConfig(shared_secret=None, webhook_url=None), "FLOW_SHARED_SECRET"),
        ],
    )
    def test_missing_setting_returns_500(self, config, missing, deliverer, log):
        response = _run(_request('{"orderId": "1"}'), config, deliverer, log)

        assert response.status_code == 500
        assert response.body == {"error": "Internal Server Error"}
        assert deliverer.calls == []
        error = next(e for e in log.entries if e["level"] == "ERROR")
        assert missing in error["message"]
        assert error["fields"]["missing_setting"] == missing

    def test_configuration_checked_before_auth(self, deliverer, log):
        config = RelayConfig(shared_secret=SECRET, webhook_url=None)
        response = _run(_request(token=None), config, deliverer, log)
        assert response.status_code == 500


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_missing_header_returns_401(self, config, deliverer, log):
        response = _run(_request('{"test": "data"}', token=None), config, deliverer, log)

        assert response.status_code == 401
        assert response.body == {"error": "Unauthorized"}
        assert deliverer.calls == []

    def test_wrong_token_returns_401(self, config, deliverer, log):
        response = _run(_request('{"test": "data"}', token="wrong-token"), config, deliverer, log)
        assert response.status_code == 401
        assert response.body == {"error": "Unauthorized"}

    @pytest.mark.parametrize(
        "header_value",
        [
            SECRET,
            f"bearer {SECRET}",
            f"Bearer  {SECRET}",
            f"Token {SECRET}",
            "Bearer ",
            f"Bearer {SECRET} ",
        ],
    )
    def test_malformed_header_returns_401(self, header_value, config, deliverer, log):
        request = InboundRequest.build(headers={"Authorization": header_value}, body="{}")
        response = _run(request, config, deliverer, log)
        assert response.status_code == 401

    @pytest.mark.parametrize("header_name", ["authorization", "Authorization", "AUTHORIZATION"])
    def test_header_lookup_is_case_insensitive(self, header_name, config, deliverer, log):
        request = InboundRequest.build(headers={header_name: f"Bearer {SECRET}"}, body="{}")
        response = _run(request, config, deliverer, log)
        assert response.status_code == 200

    def test_failure_log_has_shape_not_token(self, config, deliverer, log):
        _run(_request(token="wrong-token"), config, deliverer, log)

        entry = log.find("Authentication failed")
        assert entry["level"] == "WARNING"
        assert entry["fields"]["has_bearer"] is True
        assert entry["fields"]["auth_header_length"] == len("Bearer wrong-token")
        assert "wrong-token" not in json.dumps(log.entries, default=str)

    def test_failure_log_without_bearer_prefix(self, config, deliverer, log):
        request = InboundRequest.build(headers={"authorization": "Basic abc"})
        _run(request, config, deliverer, log)
        entry = log.find("Authentication failed")
        assert entry["fields"]["has_bearer"] is False
        assert entry["fields"]["auth_header_length"] == len("Basic abc")


# ---------------------------------------------------------------------------
# Body parsing
# ---------------------------------------------------------------------------


class TestBodyValidation:
    @pytest.mark.parametrize("body", ["{bad", "{'single': 'quotes'}", "not json", '{"a": 1,}'])
    def test_invalid_json_returns_400(self, body, config, deliverer, log):
        response = _run(_request(body), config, deliverer, log)

        assert response.status_code == 400
        assert response.body == {"error": "Invalid JSON"}
        assert deliverer.calls == []

    @pytest.mark.parametrize("body", ["5", "[1,2]", '"a string"', "true", "null"])
    def test_non_object_returns_400(self, body, config, deliverer, log):
        response = _run(_request(body), config, deliverer, log)

        assert response.status_code == 400
        assert response.body == {"error": "Request body must be an object"}
        assert deliverer.calls == []

    def test_invalid_json_is_logged_as_error(self, config, deliverer, log):
        _run(_request("{bad"), config, deliverer, log)
        assert "ERROR" in log.levels()

    def test_base64_body_is_decoded(self, config, deliverer, log):
        request = InboundRequest.build(
            headers={"authorization": f"Bearer {SECRET}"},
            body="eyJvcmRlcklkIjogIjEyMyJ9",  # {"orderId": "123"}
            is_base64_encoded=True,
        )
        response = _run(request, config, deliverer, log)

        assert response.status_code == 200
        assert deliverer.calls[0]["payload"]["text"].endswith("ID: 123")

    def test_undecodable_base64_body_returns_400(self, config, deliverer, log):
        request = InboundRequest.build(
            headers={"authorization": f"Bearer {SECRET}"},
            body="%%%not-base64%%%",
            is_base64_encoded=True,
        )
        response = _run(request, config, deliverer, log)
        assert response.status_code == 400
        assert response.body == {"error": "Invalid JSON"}


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class TestDelivery:
    def test_success_posts_formatted_text(self, config, deliverer, log):
        body = '{"orderId": "123", "name": "#1001", "total": "99.99"}'
        response = _run(_request(body), config, deliverer, log)

        assert response.status_code == 200
        assert response.body == {"message": "Success", "requestId": REQUEST_ID}
        assert deliverer.calls == [
            {"url": WEBHOOK_URL, "payload": {"text": "📦 New Order: #1001 • $99.99 • ID: 123"}}
        ]

    @pytest.mark.parametrize("body", [None, "", "{}"])
    def test_empty_body_uses_defaults(self, body, config, deliverer, log):
        response = _run(_request(body), config, deliverer, log)

        assert response.status_code == 200
        assert response.body["message"] == "Success"
        assert response.body["requestId"] == REQUEST_ID
        assert deliverer.calls[0]["payload"] == {"text": "📦 New Order: Unknown • $0 • ID: N/A"}

    def test_transport_error_returns_502(self, config, log):
        error = DeliveryError("connection reset", url_host="hooks.slack.com")
        deliverer = FakeDeliverer(error=error)
        response = _run(_request('{"orderId": "1"}'), config, deliverer, log)

        assert response.status_code == 502
        assert response.body == {"error": "Slack integration failed"}
        entry = log.find("Slack post failed")
        assert entry["level"] == "ERROR"
        assert entry["fields"]["error"] == "connection reset"
        assert isinstance(entry["exc_info"], DeliveryError)

    def test_transport_error_log_omits_webhook_path(self, log):
        secret_url = "http://127.0.0.1:9/services/T000/B000/SECRETTOKEN"
        config = RelayConfig(shared_secret=SECRET, webhook_url=secret_url)
        error = requests.ConnectionError(
            "HTTPConnectionPool(host='127.0.0.1', port=9): Max retries exceeded "
            "with url: /services/T000/B000/SECRETTOKEN"
        )
        with patch("requests.post", side_effect=error):
            response = _run(_request("{}"), config, SlackWebhookDeliverer(), log)

        assert response.status_code == 502
        entry = log.find("Slack post failed")
        assert entry["fields"]["error_type"] == "ConnectionError"
        assert entry["fields"]["url_host"] == "127.0.0.1"
        rendered = "".join(traceback.format_exception(entry["exc_info"]))
        assert "SECRETTOKEN" not in json.dumps(log.entries, default=str)
        assert "SECRETTOKEN" not in rendered

    @pytest.mark.parametrize("status", [400, 403, 404, 410, 500, 503])
    def test_non_2xx_returns_502(self, status, config, log):
        deliverer = FakeDeliverer(
            result=DeliveryResult(status_code=status, reason="Bad", body="invalid_token")
        )
        response = _run(_request('{"orderId": "1"}'), config, deliverer, log)

        assert response.status_code == 502
        assert response.body == {"error": "Slack integration failed"}
        entry = log.find("Slack API error")
        assert entry["fields"]["status"] == status
        assert entry["fields"]["status_text"] == "Bad"
        assert entry["fields"]["response_body"] == "invalid_token"

    def test_success_logs_destination_status(self, config, log):
        result = DeliveryResult(status_code=204, reason="No Content", body="")
        deliverer = FakeDeliverer(result=result)
        response = _run(_request("{}"), config, deliverer, log)

        assert response.status_code == 200
        assert log.find("Successfully posted to Slack")["fields"]["slack_status"] == 204

    def test_exactly_one_outbound_call(self, config, deliverer, log):
        _run(_request("{}"), config, deliverer, log)
        assert len(deliverer.calls) == 1

    def test_identical_requests_send_identical_text(self, config, deliverer, log):
        body = '{"orderId": "9", "name": "#9", "total": 12.5}'
        first = _run(_request(body), config, deliverer, log)
        second = _run(_request(body), config, deliverer, log)

        assert first == second
        assert deliverer.calls[0] == deliverer.calls[1]


# ---------------------------------------------------------------------------
# Logging discipline
# ---------------------------------------------------------------------------


class TestLogging:
    def test_every_entry_carries_request_id(self, config, deliverer, log):
        _run(_request('{"orderId": "1"}'), config, deliverer, log)
        assert log.entries
        assert all(entry["fields"]["request_id"] == REQUEST_ID for entry in log.entries)

    def test_secret_never_logged(self, config, deliverer, log):
        _run(_request('{"orderId": "1"}'), config, deliverer, log)
        _run(_request("{bad"), config, deliverer, log)
        _run(_request(token="nope"), config, deliverer, log)
        assert SECRET not in json.dumps(log.entries, default=str)

    def test_request_received_summary(self, config, deliverer, log):
        request = _request('{"orderId": "1"}', **{"User-Agent": "Shopify-Flow"})
        _run(request, config, deliverer, log)

        entry = log.entries[0]
        assert entry["message"] == "Request received"
        assert entry["fields"]["method"] == "POST"
        assert entry["fields"]["user_agent"] == "Shopify-Flow"
        assert entry["fields"]["has_auth"] is True
        assert entry["fields"]["body_size"] == len('{"orderId": "1"}')

    def test_body_presence_flags(self, config, deliverer, log):
        _run(_request('{"name": "#1", "total": 0}'), config, deliverer, log)
        fields = log.find("Request body parsed successfully")["fields"]
        assert fields["has_name"] is True
        assert fields["has_total"] is False
        assert fields["has_order_id"] is False
