"""Delivery transport port (abstract interface).

Both push backends implement this contract, so the router can swap a
Firebase or pywebpush transport for an in-memory fake without any change to
dispatch code. Transports report provider failures as a failed
``DeliveryResult`` instead of raising.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from relay.errors import DeliveryErrorKind
from relay.subscription.subscription import Subscription

DEFAULT_ICON = "/default-icon.png"
DEFAULT_BADGE = "/default-badge.png"


@dataclass(frozen=True)
class PushMessage:
    """What the device receives. ``data`` always carries messageId, origin and timestamp."""

    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    icon: str | None = None
    badge: int | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Result of a single delivery attempt."""

    success: bool
    provider_message_id: str | None = None
    failure_kind: DeliveryErrorKind | None = None
    failure_reason: str | None = None

    @classmethod
    def delivered(cls, provider_message_id: str) -> "DeliveryResult":
        return cls(success=True, provider_message_id=provider_message_id)

    @classmethod
    def failed(cls, kind: DeliveryErrorKind, reason: str) -> "DeliveryResult":
        return cls(success=False, failure_kind=kind, failure_reason=reason)


class DeliveryTransport(ABC):
    """Abstract push transport."""

    name: str

    @abstractmethod
    def send(self, subscription: Subscription, message: PushMessage) -> DeliveryResult:
        """Push ``message`` to the device described by ``subscription``."""
        ...
