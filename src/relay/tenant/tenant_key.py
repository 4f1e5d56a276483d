"""TenantKey aggregate and the per-request TenantContext it resolves to.

A tenant key binds an opaque bearer secret to exactly one origin. Keys are
issued out of band (``manage.py issue-key``) and only ever read on the
request path.
"""

import json
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

from relay.config import ALL_CAPABILITIES
from relay.domain import relay
from relay.errors import CapabilityError


class Capability(Enum):
    SEND_NOTIFICATIONS = "notifications:send"
    MANAGE_SUBSCRIPTIONS = "subscriptions:manage"


class KeyEnvironment(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@relay.aggregate
class TenantKey:
    key: String(identifier=True, required=True, min_length=32, max_length=255)
    origin: String(required=True, max_length=255)
    capabilities: Text()  # JSON list of Capability values
    active: Boolean(default=True)
    expires_at: DateTime()
    created_by: String(max_length=255)
    environment: String(choices=KeyEnvironment, default=KeyEnvironment.PRODUCTION.value)
    created_at: DateTime()

    @classmethod
    def issue(
        cls,
        origin,
        capabilities=ALL_CAPABILITIES,
        created_by=None,
        expires_at=None,
        environment=KeyEnvironment.PRODUCTION.value,
        key=None,
    ):
        """Create a key for ``origin``. A random 64-hex-char secret is generated unless given."""
        unknown = set(capabilities) - {c.value for c in Capability}
        if unknown:
            raise ValidationError({"capabilities": [f"Unknown capabilities: {', '.join(sorted(unknown))}"]})

        return cls(
            key=key or secrets.token_hex(32),
            origin=origin,
            capabilities=json.dumps(sorted(set(capabilities))),
            active=True,
            expires_at=expires_at,
            created_by=created_by,
            environment=environment,
            created_at=datetime.now(UTC),
        )

    def deactivate(self):
        self.active = False

    def capability_list(self) -> list[str]:
        return json.loads(self.capabilities) if self.capabilities else []

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        # Stores without timezone support hand back naive values; they are UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= now


@dataclass(frozen=True)
class TenantContext:
    """Authenticated tenant identity, passed explicitly down the call chain."""

    origin: str
    capabilities: frozenset[str]
    environment: str
    api_key: str

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    def require(self, capability: str) -> None:
        if not self.can(capability):
            raise CapabilityError(capability)
