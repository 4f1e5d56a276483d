"""Pick exactly one transport per attempt.

Cloud push is preferred whenever a token is stored; Web Push is used only
for subscriptions without one. A failed attempt is never retried on the
other transport.
"""

from dataclasses import dataclass

import structlog

from relay.delivery.port import DeliveryTransport, PushMessage
from relay.errors import ConsentError, ConsentErrorKind, DeliveryError, DeliveryErrorKind
from relay.subscription.subscription import Subscription, Transport

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryReceipt:
    transport: str
    provider_message_id: str


class DeliveryRouter:
    def __init__(self, cloud_push: DeliveryTransport, web_push: DeliveryTransport):
        self.cloud_push = cloud_push
        self.web_push = web_push

    def select(self, subscription: Subscription) -> DeliveryTransport:
        if subscription.has_cloud_push():
            return self.cloud_push
        if subscription.has_web_push():
            return self.web_push
        raise ConsentError(ConsentErrorKind.NO_DELIVERY_TARGET)

    def deliver(self, subscription: Subscription, message: PushMessage) -> DeliveryReceipt:
        transport = self.select(subscription)

        try:
            result = transport.send(subscription, message)
        except Exception as exc:
            logger.exception(
                "Transport raised during delivery",
                transport=transport.name,
                identity_key=subscription.identity_key,
            )
            raise DeliveryError(DeliveryErrorKind.TRANSPORT_FAILURE, str(exc)) from exc

        if result.success:
            return DeliveryReceipt(transport=transport.name, provider_message_id=result.provider_message_id)

        kind = result.failure_kind or DeliveryErrorKind.TRANSPORT_FAILURE
        # Only cloud-push tokens are prunable; Web Push rejections stay generic
        if transport.name == Transport.WEB_PUSH.value and kind == DeliveryErrorKind.INVALID_TOKEN:
            kind = DeliveryErrorKind.TRANSPORT_FAILURE

        logger.warning(
            "Delivery failed",
            transport=transport.name,
            identity_key=subscription.identity_key,
            kind=kind.value,
            reason=result.failure_reason,
        )
        raise DeliveryError(kind, result.failure_reason)
