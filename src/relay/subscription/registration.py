"""Registration flow: derive the identity key, upsert, audit.

Tenants manage subscriptions only for their own origin; the origin always
comes from the authenticated TenantContext, never from the request body.
"""

from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ValidationError

from relay.consent.guard import ConsentGuard
from relay.identity.keys import derive_identity_key
from relay.subscription.store import SubscriptionStore
from relay.subscription.subscription import DeliveryTarget, Subscription
from relay.tenant.tenant_key import Capability, TenantContext


@dataclass(frozen=True)
class PermissionStatus:
    user_key: str
    origin: str
    has_permission: bool
    granted_at: datetime | None
    active: bool


class RegistrationService:
    def __init__(self, store: SubscriptionStore, guard: ConsentGuard):
        self.store = store
        self.guard = guard

    def register(
        self,
        context: TenantContext,
        user_id: str,
        target: DeliveryTarget,
        device_info: dict | None = None,
        now: datetime | None = None,
    ) -> Subscription:
        context.require(Capability.MANAGE_SUBSCRIPTIONS.value)
        if not user_id:
            raise ValidationError({"user_id": ["userId is required"]})
        if not target.is_complete():
            raise ValidationError(
                {"delivery_target": ["Either fcmToken or a complete endpoint and keys pair is required"]}
            )

        identity_key = derive_identity_key(user_id, context.origin)
        return self.store.upsert(identity_key, user_id, context.origin, target, device_info=device_info, now=now)

    def revoke(self, context: TenantContext, user_key: str, now: datetime | None = None) -> Subscription:
        context.require(Capability.MANAGE_SUBSCRIPTIONS.value)
        return self.store.revoke(user_key, context.origin, now=now)

    def permission_status(self, context: TenantContext, user_key: str) -> PermissionStatus:
        subscription = self.store.get(user_key)
        has_permission = self.guard.has_permission(subscription, context.origin)
        return PermissionStatus(
            user_key=user_key,
            origin=context.origin,
            has_permission=has_permission,
            granted_at=subscription.granted_at(context.origin) if has_permission else None,
            active=bool(subscription.active),
        )
