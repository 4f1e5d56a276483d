"""Cloud push transport backed by the Firebase Admin SDK.

The Firebase app is created once, under its own name, when the transport is
constructed; every send goes through that app so the configured HTTP timeout
applies.
"""

import firebase_admin
import structlog
from firebase_admin import credentials, exceptions, messaging

from relay.delivery.port import DeliveryResult, DeliveryTransport, PushMessage
from relay.errors import DeliveryErrorKind
from relay.subscription.subscription import Subscription, Transport

logger = structlog.get_logger(__name__)

APP_NAME = "relay"

# Provider errors that mean the stored token will never work again
_TOKEN_INVALID_ERRORS = (
    messaging.UnregisteredError,
    messaging.SenderIdMismatchError,
)


def _is_token_rejection(exc: exceptions.InvalidArgumentError) -> bool:
    """INVALID_ARGUMENT also covers payload problems; only a bad token is prunable."""
    return "registration token" in str(exc).lower()


def initialize_app(project_id: str, service_account_path: str | None, timeout_seconds: float):
    """Return the relay's Firebase app, creating it on first use."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    if service_account_path:
        credential = credentials.Certificate(service_account_path)
    else:
        credential = credentials.ApplicationDefault()

    app = firebase_admin.initialize_app(
        credential,
        options={"projectId": project_id, "httpTimeout": timeout_seconds},
        name=APP_NAME,
    )
    logger.info("Firebase Admin SDK initialized", project_id=project_id)
    return app


def build_message(token: str, message: PushMessage) -> messaging.Message:
    return messaging.Message(
        token=token,
        notification=messaging.Notification(title=message.title, body=message.body, image=message.icon),
        data={key: str(value) for key, value in message.data.items()},
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                click_action="OPEN_ACTIVITY_1",
                notification_count=message.badge,
            ),
        ),
        apns=messaging.APNSConfig(
            headers={"apns-priority": "10"},
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=message.title, body=message.body),
                    sound="default",
                    badge=message.badge or 1,
                )
            ),
        ),
    )


class CloudPushTransport(DeliveryTransport):
    name = Transport.CLOUD_PUSH.value

    def __init__(self, app):
        self.app = app

    @classmethod
    def from_settings(cls, settings) -> "CloudPushTransport":
        if not settings.firebase_project_id:
            raise ValueError("RELAY_FIREBASE_PROJECT_ID is required for the firebase cloud push backend")
        return cls(
            initialize_app(
                settings.firebase_project_id,
                settings.firebase_service_account_path,
                settings.delivery_timeout_seconds,
            )
        )

    def send(self, subscription: Subscription, message: PushMessage) -> DeliveryResult:
        try:
            provider_message_id = messaging.send(build_message(subscription.fcm_token, message), app=self.app)
        except _TOKEN_INVALID_ERRORS as exc:
            return DeliveryResult.failed(DeliveryErrorKind.INVALID_TOKEN, str(exc))
        except exceptions.InvalidArgumentError as exc:
            if _is_token_rejection(exc):
                return DeliveryResult.failed(DeliveryErrorKind.INVALID_TOKEN, str(exc))
            return DeliveryResult.failed(DeliveryErrorKind.TRANSPORT_FAILURE, f"{exc.code}: {exc}")
        except exceptions.DeadlineExceededError as exc:
            return DeliveryResult.failed(DeliveryErrorKind.TIMEOUT, str(exc))
        except exceptions.FirebaseError as exc:
            return DeliveryResult.failed(DeliveryErrorKind.TRANSPORT_FAILURE, f"{exc.code}: {exc}")

        return DeliveryResult.delivered(provider_message_id)
