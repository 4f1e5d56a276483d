"""Tests for the TenantKey aggregate and TenantContext."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from relay.errors import CapabilityError
from relay.tenant.tenant_key import TenantContext, TenantKey

NOW = datetime(2024, 6, 1, tzinfo=UTC)


class TestIssue:
    def test_generates_long_random_key(self):
        first = TenantKey.issue(origin="a.example")
        second = TenantKey.issue(origin="a.example")
        assert len(first.key) == 64
        assert first.key != second.key

    def test_defaults(self):
        tenant_key = TenantKey.issue(origin="a.example")
        assert tenant_key.active is True
        assert tenant_key.environment == "production"
        assert tenant_key.expires_at is None
        assert tenant_key.capability_list() == ["notifications:send", "subscriptions:manage"]

    def test_restricted_capabilities(self):
        tenant_key = TenantKey.issue(origin="a.example", capabilities=["notifications:send"])
        assert tenant_key.capability_list() == ["notifications:send"]

    def test_unknown_capability_rejected(self):
        with pytest.raises(ValidationError) as exc:
            TenantKey.issue(origin="a.example", capabilities=["admin:everything"])
        assert "capabilities" in exc.value.messages

    def test_short_explicit_key_rejected(self):
        with pytest.raises(ValidationError):
            TenantKey.issue(origin="a.example", key="too-short")

    def test_deactivate(self):
        tenant_key = TenantKey.issue(origin="a.example")
        tenant_key.deactivate()
        assert tenant_key.active is False


class TestExpiry:
    def test_no_expiry_never_expires(self):
        assert TenantKey.issue(origin="a.example").is_expired(NOW) is False

    def test_past_expiry(self):
        tenant_key = TenantKey.issue(origin="a.example", expires_at=NOW - timedelta(seconds=1))
        assert tenant_key.is_expired(NOW) is True

    def test_future_expiry(self):
        tenant_key = TenantKey.issue(origin="a.example", expires_at=NOW + timedelta(days=1))
        assert tenant_key.is_expired(NOW) is False

    def test_naive_expiry_is_treated_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        tenant_key = TenantKey.issue(origin="a.example", expires_at=naive)
        assert tenant_key.is_expired(NOW) is True


class TestTenantContext:
    def test_require_passes_with_capability(self):
        context = TenantContext("a.example", frozenset({"notifications:send"}), "production", "k" * 32)
        context.require("notifications:send")

    def test_require_raises_without_capability(self):
        context = TenantContext("a.example", frozenset({"notifications:send"}), "production", "k" * 32)
        with pytest.raises(CapabilityError) as exc:
            context.require("subscriptions:manage")
        assert exc.value.status_code == 403
        assert exc.value.capability == "subscriptions:manage"

    def test_is_immutable(self):
        context = TenantContext("a.example", frozenset(), "production", "k" * 32)
        with pytest.raises(AttributeError):
            context.origin = "b.example"
