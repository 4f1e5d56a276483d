"""Tests for the Firebase and pywebpush transports with the SDK calls mocked."""

import json
from datetime import UTC, datetime
from unittest.mock import Mock, patch

import pytest
import requests
from firebase_admin import exceptions, messaging
from pywebpush import WebPushException

from relay.config import RelaySettings
from relay.delivery import build_cloud_push, build_web_push
from relay.delivery.fake_transport import FakeCloudPushTransport
from relay.delivery.fcm_transport import CloudPushTransport, build_message
from relay.delivery.port import PushMessage
from relay.delivery.webpush_transport import WebPushTransport, build_payload
from relay.errors import DeliveryErrorKind
from relay.subscription.subscription import DeliveryTarget, Subscription

NOW = datetime(2024, 1, 1, tzinfo=UTC)
MESSAGE = PushMessage(title="Hello", body="World", data={"messageId": "m1", "origin": "a.example"})


@pytest.fixture()
def cloud_subscription():
    return Subscription.register("k" * 32, "u1", "a.example", DeliveryTarget(fcm_token="tok1"), now=NOW)


@pytest.fixture()
def web_subscription():
    target = DeliveryTarget(endpoint="https://push.example.net/x", p256dh="p256", auth="secret")
    return Subscription.register("k" * 32, "u1", "a.example", target, now=NOW)


class TestCloudPushMessage:
    def test_platform_options(self):
        msg = build_message("tok1", PushMessage(title="t", body="b", data={"n": 1}, badge=4))
        assert msg.token == "tok1"
        assert msg.data == {"n": "1"}
        assert msg.android.priority == "high"
        assert msg.android.notification.click_action == "OPEN_ACTIVITY_1"
        assert msg.apns.headers == {"apns-priority": "10"}
        assert msg.apns.payload.aps.sound == "default"
        assert msg.apns.payload.aps.badge == 4

    def test_apns_badge_defaults_to_one(self):
        assert build_message("tok1", MESSAGE).apns.payload.aps.badge == 1


class TestCloudPushTransport:
    def test_success_returns_provider_id(self, cloud_subscription):
        transport = CloudPushTransport(app=Mock())
        with patch.object(messaging, "send", return_value="projects/p/messages/1") as send:
            result = transport.send(cloud_subscription, MESSAGE)

        assert result.success
        assert result.provider_message_id == "projects/p/messages/1"
        assert send.call_args.kwargs["app"] is transport.app

    @pytest.mark.parametrize(
        "error, kind",
        [
            (messaging.UnregisteredError("gone"), DeliveryErrorKind.INVALID_TOKEN),
            (
                exceptions.InvalidArgumentError("The registration token is not a valid FCM registration token"),
                DeliveryErrorKind.INVALID_TOKEN,
            ),
            (exceptions.InvalidArgumentError("Invalid data payload key: from"), DeliveryErrorKind.TRANSPORT_FAILURE),
            (exceptions.DeadlineExceededError("slow"), DeliveryErrorKind.TIMEOUT),
            (exceptions.UnavailableError("down"), DeliveryErrorKind.TRANSPORT_FAILURE),
        ],
    )
    def test_provider_errors_map_to_kinds(self, cloud_subscription, error, kind):
        transport = CloudPushTransport(app=Mock())
        with patch.object(messaging, "send", side_effect=error):
            result = transport.send(cloud_subscription, MESSAGE)

        assert result.success is False
        assert result.failure_kind == kind


class TestWebPushPayload:
    def test_defaults_for_icon_and_badge(self):
        payload = json.loads(build_payload(MESSAGE))
        assert payload["icon"] == "/default-icon.png"
        assert payload["badge"] == "/default-badge.png"
        assert payload["data"]["messageId"] == "m1"


class TestWebPushTransport:
    def setup_method(self):
        self.transport = WebPushTransport("private-key", "ops@relay.example", timeout_seconds=5)

    def test_success_uses_location_header(self, web_subscription):
        response = Mock(headers={"Location": "https://push.example.net/m/77"})
        with patch("relay.delivery.webpush_transport.webpush", return_value=response) as webpush:
            result = self.transport.send(web_subscription, MESSAGE)

        assert result.provider_message_id == "https://push.example.net/m/77"
        kwargs = webpush.call_args.kwargs
        assert kwargs["subscription_info"]["endpoint"] == "https://push.example.net/x"
        assert kwargs["subscription_info"]["keys"] == {"p256dh": "p256", "auth": "secret"}
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@relay.example"}
        assert kwargs["timeout"] == 5

    def test_success_without_location_gets_generated_id(self, web_subscription):
        with patch("relay.delivery.webpush_transport.webpush", return_value=Mock(headers={})):
            result = self.transport.send(web_subscription, MESSAGE)
        assert result.provider_message_id.startswith("web-push-")

    def test_timeout(self, web_subscription):
        with patch("relay.delivery.webpush_transport.webpush", side_effect=requests.exceptions.Timeout("slow")):
            result = self.transport.send(web_subscription, MESSAGE)
        assert result.failure_kind == DeliveryErrorKind.TIMEOUT

    def test_push_service_rejection(self, web_subscription):
        error = WebPushException("Push failed: 410 Gone", response=Mock(status_code=410))
        with patch("relay.delivery.webpush_transport.webpush", side_effect=error):
            result = self.transport.send(web_subscription, MESSAGE)
        assert result.failure_kind == DeliveryErrorKind.TRANSPORT_FAILURE
        assert "410" in result.failure_reason


class TestBackendSelection:
    def test_fake_backends(self):
        settings = RelaySettings(environment="test", cloud_push_backend="fake", web_push_backend="fake")
        assert isinstance(build_cloud_push(settings), FakeCloudPushTransport)
        assert build_web_push(settings).name == "web_push"

    def test_web_push_requires_vapid_keys(self):
        settings = RelaySettings(environment="test", web_push_backend="pywebpush")
        with pytest.raises(ValueError):
            build_web_push(settings)

    def test_firebase_requires_project_id(self):
        settings = RelaySettings(environment="test", cloud_push_backend="firebase", firebase_project_id=None)
        with pytest.raises(ValueError):
            build_cloud_push(settings)
