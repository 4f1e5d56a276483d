"""Domain events for the Subscription aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from relay.domain import relay


@relay.event(part_of="Subscription")
class SubscriptionRegistered:
    """An origin registered (or re-registered) a device for a user."""

    __version__ = 1

    identity_key: Identifier(required=True)
    origin: String(required=True, max_length=255)
    transports: String(max_length=50)  # comma-separated: "cloud_push,web_push"
    registered_at: DateTime(required=True)


@relay.event(part_of="Subscription")
class ConsentRevoked:
    """An origin withdrew its permission to notify the user."""

    __version__ = 1

    identity_key: Identifier(required=True)
    origin: String(required=True, max_length=255)
    still_active: Boolean(default=False)
    revoked_at: DateTime(required=True)
