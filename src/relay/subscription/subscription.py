"""Subscription aggregate — one device identity per (user, origin) pair.

The aggregate is keyed by the derived identity key, so repeated
registrations for the same pair always land on the same record. Consent is
tracked per origin in ``permissions``; a subscription is ``active`` while at
least one origin still holds a granted permission.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

from relay.domain import relay
from relay.subscription.events import ConsentRevoked, SubscriptionRegistered


class Transport(Enum):
    CLOUD_PUSH = "cloud_push"
    WEB_PUSH = "web_push"


@dataclass(frozen=True)
class DeliveryTarget:
    """Transport credentials presented at registration time.

    Any subset may be set; a target is usable when it carries a cloud-push
    token or the complete Web Push triple (endpoint, p256dh, auth).
    """

    fcm_token: str | None = None
    endpoint: str | None = None
    p256dh: str | None = None
    auth: str | None = None

    @property
    def has_cloud_push(self) -> bool:
        return bool(self.fcm_token)

    @property
    def has_web_push(self) -> bool:
        return bool(self.endpoint and self.p256dh and self.auth)

    def is_complete(self) -> bool:
        return self.has_cloud_push or self.has_web_push

    def transports(self) -> list[str]:
        names = []
        if self.has_cloud_push:
            names.append(Transport.CLOUD_PUSH.value)
        if self.has_web_push:
            names.append(Transport.WEB_PUSH.value)
        return names


def _loads(value, default):
    return json.loads(value) if value else default


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@relay.aggregate
class Subscription:
    """A user's device registered by a tenant origin.

    Mutated in place on every registration and revocation; never replaced
    or hard-deleted.
    """

    identity_key: Identifier(identifier=True, required=True)
    user_id: String(required=True, max_length=255)
    origin: String(required=True, max_length=255)

    # Delivery target
    fcm_token: String(max_length=1024)
    web_push_endpoint: String(max_length=2048, sanitize=False)  # URLs keep their query strings verbatim
    web_push_p256dh: String(max_length=255)
    web_push_auth: String(max_length=255)

    permissions: Text()  # JSON: origin -> {"granted": bool, "granted_at": ISO-8601}
    device_info: Text()  # JSON, as supplied by the registering client

    active: Boolean(default=True)

    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def must_have_a_complete_delivery_target(self):
        if not (self.has_cloud_push() or self.has_web_push()):
            raise ValidationError(
                {"delivery_target": ["Either an FCM token or a complete Web Push endpoint and keys is required"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, identity_key, user_id, origin, target: DeliveryTarget, device_info=None, now=None):
        """Create a subscription with consent granted to the registering origin."""
        now = now or datetime.now(UTC)

        subscription = cls(
            identity_key=identity_key,
            user_id=user_id,
            origin=origin,
            fcm_token=target.fcm_token,
            web_push_endpoint=target.endpoint,
            web_push_p256dh=target.p256dh,
            web_push_auth=target.auth,
            permissions=json.dumps({origin: _granted(now)}),
            device_info=json.dumps(device_info) if device_info is not None else None,
            active=True,
            created_at=now,
            updated_at=now,
        )

        subscription.raise_(
            SubscriptionRegistered(
                identity_key=identity_key,
                origin=origin,
                transports=",".join(target.transports()),
                registered_at=now,
            )
        )

        return subscription

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def merge_registration(self, origin, target: DeliveryTarget, device_info=None, now=None):
        """Apply a repeated registration over the stored record.

        Fields carried by ``target`` overwrite their stored counterparts;
        transports the new target does not mention are left untouched.
        ``created_at`` is never changed.
        """
        now = now or datetime.now(UTC)

        with atomic_change(self):
            if target.fcm_token:
                self.fcm_token = target.fcm_token
            if target.endpoint:
                self.web_push_endpoint = target.endpoint
            if target.p256dh:
                self.web_push_p256dh = target.p256dh
            if target.auth:
                self.web_push_auth = target.auth
            if device_info is not None:
                self.device_info = json.dumps(device_info)

            permissions = self.permission_map()
            permissions[origin] = _granted(now)
            self.permissions = json.dumps(permissions)
            self.active = True
            self.updated_at = now

        self.raise_(
            SubscriptionRegistered(
                identity_key=self.identity_key,
                origin=origin,
                transports=",".join(target.transports()),
                registered_at=now,
            )
        )

    def revoke(self, origin, now=None) -> bool:
        """Drop ``origin``'s permission entry and recompute ``active``.

        Returns False, leaving the record untouched, when ``origin`` holds no
        entry to remove.
        """
        now = now or datetime.now(UTC)

        permissions = self.permission_map()
        if origin not in permissions:
            return False
        del permissions[origin]

        with atomic_change(self):
            self.permissions = json.dumps(permissions)
            self.active = any(entry.get("granted") for entry in permissions.values())
            self.updated_at = now

        self.raise_(
            ConsentRevoked(
                identity_key=self.identity_key,
                origin=origin,
                still_active=self.active,
                revoked_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    def permission_map(self) -> dict:
        return _loads(self.permissions, {})

    def permission_for(self, origin) -> dict | None:
        return self.permission_map().get(origin)

    def granted_at(self, origin) -> datetime | None:
        entry = self.permission_for(origin)
        if not entry or not entry.get("granted_at"):
            return None
        return datetime.fromisoformat(entry["granted_at"])

    def device_info_map(self) -> dict | None:
        return _loads(self.device_info, None)

    def has_cloud_push(self) -> bool:
        return bool(self.fcm_token)

    def has_web_push(self) -> bool:
        return bool(self.web_push_endpoint and self.web_push_p256dh and self.web_push_auth)

    def delivery_target(self) -> DeliveryTarget:
        return DeliveryTarget(
            fcm_token=self.fcm_token,
            endpoint=self.web_push_endpoint,
            p256dh=self.web_push_p256dh,
            auth=self.web_push_auth,
        )


def _granted(now: datetime) -> dict:
    return {"granted": True, "granted_at": now.isoformat()}
