"""DispatchService — one notification attempt, start to finish.

State machine (per request, strictly sequential, no automatic retries):
    RECEIVED → AUTHORIZED → FOUND → CONSENT_CHECKED → DELIVERED
    any step → FAILED

Every attempt gets a fresh message id. A ``sent`` dispatch record is written
on delivery; ``failed`` records are written for consent denials and
provider errors. Authorization and lookup failures leave no record, since
there is no tenant-visible attempt to audit.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog

from relay.audit.recorder import EventRecorder
from relay.audit.records import DispatchStatus
from relay.consent.guard import ConsentGuard
from relay.delivery.port import PushMessage
from relay.delivery.router import DeliveryRouter
from relay.errors import ConsentError, DeliveryError
from relay.subscription.store import SubscriptionStore
from relay.tenant.authority import TenantAuthority
from relay.tenant.tenant_key import Capability, TenantContext

logger = structlog.get_logger(__name__)


class DispatchState(Enum):
    RECEIVED = "Received"
    AUTHORIZED = "Authorized"
    FOUND = "Found"
    CONSENT_CHECKED = "ConsentChecked"
    DELIVERED = "Delivered"
    FAILED = "Failed"


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    icon: str | None = None
    badge: int | None = None
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchReceipt:
    message_id: str
    timestamp: datetime
    transport: str
    provider_message_id: str


def epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return int(moment.timestamp() * 1000)


class DispatchService:
    def __init__(
        self,
        authority: TenantAuthority,
        store: SubscriptionStore,
        guard: ConsentGuard,
        router: DeliveryRouter,
        recorder: EventRecorder,
        clock: Callable[[], datetime] | None = None,
    ):
        self.authority = authority
        self.store = store
        self.guard = guard
        self.router = router
        self.recorder = recorder
        self._clock = clock or (lambda: datetime.now(UTC))

    def dispatch(
        self,
        presented_key: str | None,
        user_key: str,
        notification: NotificationContent,
        **request_meta,
    ) -> DispatchReceipt:
        """Authorize ``presented_key``, then send. ``request_meta`` is forwarded to the authority."""
        logger.debug("Dispatch state", state=DispatchState.RECEIVED.value, identity_key=user_key)
        context = self.authority.authorize(presented_key, **request_meta)
        return self.send(context, user_key, notification)

    def send(self, context: TenantContext, user_key: str, notification: NotificationContent) -> DispatchReceipt:
        context.require(Capability.SEND_NOTIFICATIONS.value)
        message_id = str(uuid4())
        log = logger.bind(message_id=message_id, origin=context.origin, identity_key=user_key)
        log.debug("Dispatch state", state=DispatchState.AUTHORIZED.value)

        subscription = self.store.get(user_key)
        log.debug("Dispatch state", state=DispatchState.FOUND.value)

        decision = self.guard.check_send(subscription, context.origin)
        if not decision.allowed:
            log.info("Dispatch state", state=DispatchState.FAILED.value, reason=decision.reason.value)
            self._record(message_id, context, user_key, notification, DispatchStatus.FAILED, decision.reason.value)
            raise ConsentError(decision.reason)
        log.debug("Dispatch state", state=DispatchState.CONSENT_CHECKED.value)

        timestamp = self._clock()
        message = self._build_message(context, notification, message_id, timestamp)

        try:
            receipt = self.router.deliver(subscription, message)
        except DeliveryError as exc:
            log.info("Dispatch state", state=DispatchState.FAILED.value, reason=exc.code)
            self._record(
                message_id,
                context,
                user_key,
                notification,
                DispatchStatus.FAILED,
                f"{exc.code}: {exc.reason}" if exc.reason else exc.code,
            )
            raise

        self._record(
            message_id,
            context,
            user_key,
            notification,
            DispatchStatus.SENT,
            transport=receipt.transport,
            provider_message_id=receipt.provider_message_id,
            timestamp=timestamp,
        )
        log.info("Notification sent", state=DispatchState.DELIVERED.value, transport=receipt.transport)

        return DispatchReceipt(
            message_id=message_id,
            timestamp=timestamp,
            transport=receipt.transport,
            provider_message_id=receipt.provider_message_id,
        )

    @staticmethod
    def _build_message(context, notification, message_id, timestamp) -> PushMessage:
        data = {key: str(value) for key, value in (notification.data or {}).items()}
        data.update(
            {
                "origin": context.origin,
                "messageId": message_id,
                "timestamp": str(epoch_millis(timestamp)),
            }
        )
        return PushMessage(
            title=notification.title,
            body=notification.body,
            data=data,
            icon=notification.icon,
            badge=notification.badge,
        )

    def _record(
        self,
        message_id,
        context,
        user_key,
        notification,
        status,
        failure_reason=None,
        transport=None,
        provider_message_id=None,
        timestamp=None,
    ):
        self.recorder.record_dispatch(
            message_id=message_id,
            identity_key=user_key,
            origin=context.origin,
            title=notification.title,
            body=notification.body,
            status=status,
            timestamp=timestamp or self._clock(),
            failure_reason=failure_reason,
            transport=transport,
            provider_message_id=provider_message_id,
        )
