"""Web Push transport backed by pywebpush (VAPID-signed requests)."""

import json
from uuid import uuid4

import requests
import structlog
from pywebpush import WebPushException, webpush

from relay.delivery.port import DEFAULT_BADGE, DEFAULT_ICON, DeliveryResult, DeliveryTransport, PushMessage
from relay.errors import DeliveryErrorKind
from relay.subscription.subscription import Subscription, Transport

logger = structlog.get_logger(__name__)


def build_payload(message: PushMessage) -> str:
    return json.dumps(
        {
            "title": message.title,
            "body": message.body,
            "icon": message.icon or DEFAULT_ICON,
            "badge": message.badge if message.badge is not None else DEFAULT_BADGE,
            "data": message.data,
        }
    )


class WebPushTransport(DeliveryTransport):
    name = Transport.WEB_PUSH.value

    def __init__(self, vapid_private_key: str, contact_email: str, timeout_seconds: float):
        self.vapid_private_key = vapid_private_key
        self.contact_email = contact_email
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings) -> "WebPushTransport":
        if not (settings.vapid_private_key and settings.vapid_public_key):
            raise ValueError("RELAY_VAPID_PRIVATE_KEY and RELAY_VAPID_PUBLIC_KEY are required for Web Push")
        logger.info("VAPID keys ready", public_key=settings.vapid_public_key[:20])
        return cls(settings.vapid_private_key, settings.vapid_contact_email, settings.delivery_timeout_seconds)

    def send(self, subscription: Subscription, message: PushMessage) -> DeliveryResult:
        subscription_info = {
            "endpoint": subscription.web_push_endpoint,
            "keys": {"p256dh": subscription.web_push_p256dh, "auth": subscription.web_push_auth},
        }

        try:
            response = webpush(
                subscription_info=subscription_info,
                data=build_payload(message),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": f"mailto:{self.contact_email}"},
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as exc:
            return DeliveryResult.failed(DeliveryErrorKind.TIMEOUT, str(exc))
        except WebPushException as exc:
            status = getattr(exc.response, "status_code", None)
            return DeliveryResult.failed(DeliveryErrorKind.TRANSPORT_FAILURE, f"Push service returned {status}: {exc}")
        except requests.exceptions.RequestException as exc:
            return DeliveryResult.failed(DeliveryErrorKind.TRANSPORT_FAILURE, str(exc))

        location = getattr(response, "headers", {}).get("Location")
        return DeliveryResult.delivered(location or f"web-push-{uuid4().hex[:12]}")
