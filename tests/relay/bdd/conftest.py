"""Shared BDD fixtures and step definitions for the consent lifecycle."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from relay.audit.records import DispatchRecord
from relay.config import ALL_CAPABILITIES
from relay.identity.keys import derive_identity_key
from relay.subscription.subscription import DeliveryTarget
from relay.tenant.tenant_key import TenantKey


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def tenants():
    """origin -> {"key": secret, "expired": secret}"""
    return {}


@pytest.fixture()
def outcome():
    """Container for the last send's receipt or error."""
    return {"receipt": None, "exc": None}


def user_key(origin, user_id):
    return derive_identity_key(user_id, origin)


def context_for(services, tenants, origin):
    return services.authority.authorize(tenants[origin]["key"])


def register(services, tenants, origin, user_id, token):
    context = context_for(services, tenants, origin)
    services.registration.register(context, user_id, DeliveryTarget(fcm_token=token))


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('tenant "{origin}" holds a full-access key'))
def tenant_with_key(tenants, origin):
    tenant_key = TenantKey.issue(origin=origin, capabilities=list(ALL_CAPABILITIES), created_by="bdd")
    current_domain.repository_for(TenantKey).add(tenant_key)
    tenants[origin] = {"key": tenant_key.key}


@given(parsers.cfparse('tenant "{origin}" holds a key that expired yesterday'))
def tenant_with_expired_key(tenants, origin):
    tenant_key = TenantKey.issue(
        origin=origin,
        created_by="bdd",
        expires_at=datetime.now(UTC) - timedelta(days=1),
    )
    current_domain.repository_for(TenantKey).add(tenant_key)
    tenants[origin]["expired"] = tenant_key.key


@given(parsers.cfparse('tenant "{origin}" registered user "{user_id}" with cloud push token "{token}"'))
def registered_user(services, tenants, origin, user_id, token):
    register(services, tenants, origin, user_id, token)


@given(parsers.cfparse('tenant "{origin}" revoked user "{user_id}"'))
def revoked_user(services, tenants, origin, user_id):
    services.registration.revoke(context_for(services, tenants, origin), user_key(origin, user_id))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("nothing is delivered")
def nothing_delivered(cloud_push, web_push):
    assert cloud_push.sent == []
    assert web_push.sent == []


@then(parsers.cfparse('the dispatch record status is "{status}"'))
def dispatch_record_status(status):
    records = current_domain.repository_for(DispatchRecord)._dao.query.all().items
    assert len(records) == 1
    assert records[0].status == status
