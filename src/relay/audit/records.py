"""Append-only audit records: dispatch outcomes, consent changes, key usage."""

from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from relay.domain import relay


class DispatchStatus(Enum):
    SENT = "sent"
    FAILED = "failed"


class ConsentEventType(Enum):
    REGISTERED = "registered"
    REVOKED = "revoked"


@relay.aggregate
class DispatchRecord:
    """Outcome of one send attempt. Written once, never updated."""

    message_id: Identifier(identifier=True, required=True)
    identity_key: String(required=True, max_length=64)
    origin: String(required=True, max_length=255)
    title: String(max_length=100)
    body: Text()
    body_fingerprint: String(max_length=64)  # SHA-256 hex when bodies are not retained
    status: String(choices=DispatchStatus, required=True)
    failure_reason: String(max_length=500)
    transport: String(max_length=20)
    provider_message_id: String(max_length=255)
    timestamp: DateTime(required=True)


@relay.aggregate
class ConsentEvent:
    event_type: String(choices=ConsentEventType, required=True)
    identity_key: String(required=True, max_length=64)
    origin: String(required=True, max_length=255)
    timestamp: DateTime(required=True)


@relay.aggregate
class ApiUsage:
    """One successful authorization, attributed to the presenting key."""

    api_key: String(required=True, max_length=255)
    origin: String(required=True, max_length=255)
    endpoint: String(max_length=500)
    method: String(max_length=10)
    user_agent: String(max_length=500)
    ip: String(max_length=64)
    timestamp: DateTime(required=True)


@relay.repository(part_of=ConsentEvent)
class ConsentEventRepository:
    def history(self, identity_key: str) -> list[ConsentEvent]:
        """Consent events for one subscription, oldest first."""
        return self._dao.query.filter(identity_key=identity_key).order_by("timestamp").all().items


@relay.repository(part_of=ApiUsage)
class ApiUsageRepository:
    def for_key(self, api_key: str) -> list[ApiUsage]:
        return self._dao.query.filter(api_key=api_key).order_by("timestamp").all().items
