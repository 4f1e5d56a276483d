"""Best-effort writer for the relay's audit trail.

Audit writes never decide an outcome: a failed write is logged and dropped,
so a delivered notification is never reported as failed (or the other way
round) because the audit store misbehaved.
"""

import hashlib
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from relay.audit.records import ApiUsage, ConsentEvent, ConsentEventType, DispatchRecord, DispatchStatus
from relay.errors import DispatchRecordNotFound

logger = structlog.get_logger(__name__)


def fingerprint(body: str | None) -> str | None:
    if body is None:
        return None
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def _clip(value, limit):
    return value[:limit] if value else value


class EventRecorder:
    def __init__(self, retain_bodies: bool = True):
        self.retain_bodies = retain_bodies

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def record_dispatch(
        self,
        *,
        message_id: str,
        identity_key: str,
        origin: str,
        title: str | None,
        body: str | None,
        status: DispatchStatus,
        timestamp: datetime,
        failure_reason: str | None = None,
        transport: str | None = None,
        provider_message_id: str | None = None,
    ) -> bool:
        """Persist a dispatch outcome. Returns False when the write failed."""
        try:
            record = DispatchRecord(
                message_id=message_id,
                identity_key=identity_key,
                origin=origin,
                title=title,
                body=body if self.retain_bodies else None,
                body_fingerprint=None if self.retain_bodies else fingerprint(body),
                status=status.value,
                failure_reason=_clip(failure_reason, 500),
                transport=transport,
                provider_message_id=provider_message_id,
                timestamp=timestamp,
            )
            current_domain.repository_for(DispatchRecord).add(record)
            return True
        except Exception:
            logger.exception(
                "Failed to write dispatch record",
                message_id=message_id,
                origin=origin,
                status=status.value,
            )
            return False

    def record_consent(
        self,
        event_type: ConsentEventType,
        identity_key: str,
        origin: str,
        timestamp: datetime | None = None,
    ) -> bool:
        try:
            event = ConsentEvent(
                event_type=event_type.value,
                identity_key=identity_key,
                origin=origin,
                timestamp=timestamp or datetime.now(UTC),
            )
            current_domain.repository_for(ConsentEvent).add(event)
            return True
        except Exception:
            logger.exception(
                "Failed to write consent event",
                event_type=event_type.value,
                identity_key=identity_key,
                origin=origin,
            )
            return False

    def record_usage(
        self,
        *,
        api_key: str,
        origin: str,
        endpoint: str | None = None,
        method: str | None = None,
        user_agent: str | None = None,
        ip: str | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        try:
            usage = ApiUsage(
                api_key=api_key,
                origin=origin,
                endpoint=_clip(endpoint, 500),
                method=method,
                user_agent=_clip(user_agent, 500),
                ip=ip,
                timestamp=timestamp or datetime.now(UTC),
            )
            current_domain.repository_for(ApiUsage).add(usage)
            return True
        except Exception:
            logger.exception("Failed to write API usage", origin=origin, endpoint=endpoint)
            return False

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def dispatch_record(self, message_id: str) -> DispatchRecord:
        try:
            return current_domain.repository_for(DispatchRecord).get(message_id)
        except ObjectNotFoundError:
            raise DispatchRecordNotFound(message_id) from None

    def consent_history(self, identity_key: str) -> list[ConsentEvent]:
        return current_domain.repository_for(ConsentEvent).history(identity_key)

    def usage_for_key(self, api_key: str) -> list[ApiUsage]:
        return current_domain.repository_for(ApiUsage).for_key(api_key)
