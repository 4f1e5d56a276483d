"""Tests for ConsentGuard: default-deny and rule ordering."""

import json
from datetime import UTC, datetime

from relay.consent.guard import ConsentGuard
from relay.errors import ConsentErrorKind
from relay.subscription.subscription import DeliveryTarget, Subscription

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def _subscription(permissions=None, target=None):
    sub = Subscription.register("k" * 32, "u1", "a.example", target or DeliveryTarget(fcm_token="tok1"), now=NOW)
    if permissions is not None:
        sub.permissions = json.dumps(permissions)
    return sub


class _StoredWithoutTarget:
    """A stored record whose transports were cleared out of band."""

    def __init__(self, permissions):
        self._permissions = permissions

    def permission_for(self, origin):
        return self._permissions.get(origin)

    def has_cloud_push(self):
        return False

    def has_web_push(self):
        return False


class TestCheckSend:
    def setup_method(self):
        self.guard = ConsentGuard()

    def test_granted_origin_is_allowed(self):
        decision = self.guard.check_send(_subscription(), "a.example")
        assert decision.allowed is True
        assert decision.reason is None

    def test_empty_permissions_deny(self):
        decision = self.guard.check_send(_subscription(permissions={}), "a.example")
        assert decision.allowed is False
        assert decision.reason == ConsentErrorKind.NO_PERMISSION

    def test_other_origin_is_denied(self):
        decision = self.guard.check_send(_subscription(), "b.example")
        assert decision.reason == ConsentErrorKind.NO_PERMISSION

    def test_explicit_denial_is_denied(self):
        sub = _subscription(permissions={"a.example": {"granted": False, "granted_at": NOW.isoformat()}})
        assert self.guard.check_send(sub, "a.example").reason == ConsentErrorKind.NO_PERMISSION

    def test_no_delivery_target_checked_after_permission(self):
        decision = self.guard.check_send(_StoredWithoutTarget({"a.example": {"granted": True}}), "a.example")
        assert decision.reason == ConsentErrorKind.NO_DELIVERY_TARGET

    def test_permission_rule_wins_over_missing_target(self):
        decision = self.guard.check_send(_StoredWithoutTarget({}), "a.example")
        assert decision.reason == ConsentErrorKind.NO_PERMISSION


class TestHasPermission:
    def test_reflects_only_permission_rule(self):
        guard = ConsentGuard()
        assert guard.has_permission(_subscription(), "a.example") is True
        assert guard.has_permission(_subscription(permissions={}), "a.example") is False
