"""Create-or-merge persistence for Subscription records."""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from sqlalchemy.exc import IntegrityError

from relay.audit.recorder import EventRecorder
from relay.audit.records import ConsentEventType
from relay.errors import SubscriptionNotFound
from relay.subscription.subscription import DeliveryTarget, Subscription

logger = structlog.get_logger(__name__)


def _is_write_conflict(exc: Exception, created: bool) -> bool:
    """True when ``exc`` means another writer got to the record first."""
    if isinstance(exc, ExpectedVersionError):
        return True
    if not created:
        return False
    # A racing first registration already inserted this identity key
    if isinstance(exc, IntegrityError):
        return True
    return isinstance(exc, ValidationError) and "identity_key" in (exc.messages or {})


class SubscriptionStore:
    """Reads and writes subscriptions through the domain's repository.

    The identity key is the aggregate identifier, so concurrent first
    registrations for one pair converge on a single record. When another
    writer wins (a duplicate insert or a stale version), the record is
    re-read and the merge re-applied on top of it (last write wins).
    """

    max_merge_attempts = 3

    def __init__(self, recorder: EventRecorder):
        self.recorder = recorder

    @staticmethod
    def _repository():
        return current_domain.repository_for(Subscription)

    def find(self, identity_key: str) -> Subscription | None:
        try:
            return self._repository().get(identity_key)
        except ObjectNotFoundError:
            return None

    def get(self, identity_key: str) -> Subscription:
        subscription = self.find(identity_key)
        if subscription is None:
            raise SubscriptionNotFound(identity_key)
        return subscription

    def upsert(
        self,
        identity_key: str,
        user_id: str,
        origin: str,
        delivery_target: DeliveryTarget,
        device_info: dict | None = None,
        now: datetime | None = None,
    ) -> Subscription:
        now = now or datetime.now(UTC)
        repo = self._repository()

        for attempt in range(1, self.max_merge_attempts + 1):
            subscription = self.find(identity_key)
            created = subscription is None
            if created:
                subscription = Subscription.register(
                    identity_key, user_id, origin, delivery_target, device_info=device_info, now=now
                )
            else:
                subscription.merge_registration(origin, delivery_target, device_info=device_info, now=now)

            try:
                repo.add(subscription)
                break
            except (ExpectedVersionError, ValidationError, IntegrityError) as exc:
                if not _is_write_conflict(exc, created) or attempt == self.max_merge_attempts:
                    raise
                logger.info(
                    "Concurrent registration detected, re-applying merge",
                    identity_key=identity_key,
                    attempt=attempt,
                    conflict=type(exc).__name__,
                )

        logger.info(
            "Subscription registered",
            identity_key=identity_key,
            origin=origin,
            transports=delivery_target.transports(),
        )
        self.recorder.record_consent(ConsentEventType.REGISTERED, identity_key, origin, timestamp=now)
        return subscription

    def revoke(self, identity_key: str, origin: str, now: datetime | None = None) -> Subscription:
        now = now or datetime.now(UTC)

        subscription = self.get(identity_key)
        if not subscription.revoke(origin, now=now):
            logger.info("Revoke by origin without consent ignored", identity_key=identity_key, origin=origin)
            return subscription
        self._repository().add(subscription)

        logger.info(
            "Consent revoked",
            identity_key=identity_key,
            origin=origin,
            active=subscription.active,
        )
        self.recorder.record_consent(ConsentEventType.REVOKED, identity_key, origin, timestamp=now)
        return subscription
