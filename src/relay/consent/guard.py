"""The single place consent is evaluated.

A missing permission entry is treated exactly like an explicit denial.
"""

from dataclasses import dataclass

from relay.errors import ConsentErrorKind
from relay.subscription.subscription import Subscription


@dataclass(frozen=True)
class ConsentDecision:
    allowed: bool
    reason: ConsentErrorKind | None = None


ALLOWED = ConsentDecision(allowed=True)


class ConsentGuard:
    def has_permission(self, subscription: Subscription, origin: str) -> bool:
        entry = subscription.permission_for(origin)
        return bool(entry and entry.get("granted") is True)

    def check_send(self, subscription: Subscription, requesting_origin: str) -> ConsentDecision:
        if not self.has_permission(subscription, requesting_origin):
            return ConsentDecision(allowed=False, reason=ConsentErrorKind.NO_PERMISSION)
        if not (subscription.has_cloud_push() or subscription.has_web_push()):
            return ConsentDecision(allowed=False, reason=ConsentErrorKind.NO_DELIVERY_TARGET)
        return ALLOWED
