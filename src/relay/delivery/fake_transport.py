"""Fake push transports that record deliveries in memory for testing."""

from uuid import uuid4

from relay.delivery.port import DeliveryResult, DeliveryTransport, PushMessage
from relay.errors import DeliveryErrorKind
from relay.subscription.subscription import Subscription, Transport


class _FakeTransport(DeliveryTransport):
    prefix = "push"
    default_failure_reason = "Push delivery failed"

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_kind = DeliveryErrorKind.TRANSPORT_FAILURE
        self.failure_reason = self.default_failure_reason

    def configure(
        self,
        should_succeed: bool = True,
        failure_kind: DeliveryErrorKind = DeliveryErrorKind.TRANSPORT_FAILURE,
        failure_reason: str | None = None,
    ):
        """Configure the fake transport behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_kind = failure_kind
        self.failure_reason = failure_reason or self.default_failure_reason

    def _address(self, subscription: Subscription) -> dict:
        raise NotImplementedError

    def send(self, subscription: Subscription, message: PushMessage) -> DeliveryResult:
        if not self.should_succeed:
            return DeliveryResult.failed(self.failure_kind, self.failure_reason)

        provider_message_id = f"{self.prefix}-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "provider_message_id": provider_message_id,
                "identity_key": subscription.identity_key,
                "title": message.title,
                "body": message.body,
                "icon": message.icon,
                "badge": message.badge,
                "data": dict(message.data),
                **self._address(subscription),
            }
        )
        return DeliveryResult.delivered(provider_message_id)

    def reset(self):
        """Clear recorded deliveries and restore success mode."""
        self.sent.clear()
        self.configure()


class FakeCloudPushTransport(_FakeTransport):
    name = Transport.CLOUD_PUSH.value
    prefix = "fcm"
    default_failure_reason = "Cloud push delivery failed"

    def _address(self, subscription):
        return {"token": subscription.fcm_token}


class FakeWebPushTransport(_FakeTransport):
    name = Transport.WEB_PUSH.value
    prefix = "web-push"
    default_failure_reason = "Web Push delivery failed"

    def _address(self, subscription):
        return {"endpoint": subscription.web_push_endpoint}
