"""Tests for push gateways.

**Feature: pricewatch**
"""

import json

import httpx
import pytest

from pricewatch.errors import GatewayMisconfigured
from pricewatch.gateways.console import ConsoleGateway
from pricewatch.gateways.fcm import FCM_URL, FcmGateway
from pricewatch.models import DeliveryStatus, NotificationPayload

PAYLOAD = NotificationPayload(
    title="Price Alert: AAPL",
    body="AAPL is now above $200.00 (current: $201.00)",
    data={"symbol": "AAPL", "type": "alert_triggered"},
)


def make_gateway(handler) -> FcmGateway:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return FcmGateway("demo-project", "secret-token", client=client)


def fcm_error(status: str, error_code: str = "") -> dict:
    details = [{"@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError",
                "errorCode": error_code}] if error_code else []
    return {"error": {"code": 400, "status": status, "details": details}}


class TestFcmGateway:
    """FCM responses map to per-token delivery outcomes."""

    def test_success_request_shape(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"name": "projects/demo-project/messages/1"})

        status = make_gateway(handler).send_one("device-token", PAYLOAD)

        assert status == DeliveryStatus.OK
        (request,) = requests
        assert str(request.url) == FCM_URL.format(project_id="demo-project")
        assert request.headers["Authorization"] == "Bearer secret-token"
        message = json.loads(request.content)["message"]
        assert message["token"] == "device-token"
        assert message["notification"] == {"title": PAYLOAD.title, "body": PAYLOAD.body}
        assert message["data"] == PAYLOAD.data
        assert message["webpush"]["notification"]["tag"] == "stock-alert"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(404, json=fcm_error("NOT_FOUND", "UNREGISTERED")),
            httpx.Response(400, json=fcm_error("INVALID_ARGUMENT")),
            httpx.Response(400, json=fcm_error("FAILED_PRECONDITION", "UNREGISTERED")),
        ],
    )
    def test_invalid_token(self, response: httpx.Response):
        gateway = make_gateway(lambda request: response)
        assert gateway.send_one("stale", PAYLOAD) == DeliveryStatus.INVALID_TOKEN

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_transient_errors(self, status_code: int):
        gateway = make_gateway(
            lambda request: httpx.Response(status_code, json=fcm_error("UNAVAILABLE"))
        )
        assert gateway.send_one("t", PAYLOAD) == DeliveryStatus.TRANSIENT_ERROR

    def test_transport_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert make_gateway(handler).send_one("t", PAYLOAD) == DeliveryStatus.TRANSIENT_ERROR

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failure_raises(self, status_code: int):
        gateway = make_gateway(lambda request: httpx.Response(status_code, json={}))
        with pytest.raises(GatewayMisconfigured):
            gateway.send_one("t", PAYLOAD)

    def test_missing_credentials(self):
        with pytest.raises(GatewayMisconfigured):
            FcmGateway("", "token")
        with pytest.raises(GatewayMisconfigured):
            FcmGateway("project", "")

    def test_send_many_isolates_tokens(self):
        def handler(request: httpx.Request) -> httpx.Response:
            token = json.loads(request.content)["message"]["token"]
            if token == "bad":
                return httpx.Response(404, json=fcm_error("NOT_FOUND", "UNREGISTERED"))
            return httpx.Response(200, json={})

        results = make_gateway(handler).send_many(["a", "bad", "c"], PAYLOAD)

        assert results == {
            "a": DeliveryStatus.OK,
            "bad": DeliveryStatus.INVALID_TOKEN,
            "c": DeliveryStatus.OK,
        }


class TestConsoleGateway:
    def test_records_and_succeeds(self):
        gateway = ConsoleGateway()

        assert gateway.send_many(["a", "b"], PAYLOAD) == {
            "a": DeliveryStatus.OK,
            "b": DeliveryStatus.OK,
        }
        assert [token for token, _ in gateway.sent] == ["a", "b"]
