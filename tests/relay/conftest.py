"""Shared fixtures for relay tests: settings, fake transports, wired services."""

import pytest
from fastapi.testclient import TestClient
from protean import current_domain

from relay.api.application import create_app
from relay.api.rate_limit import InMemoryFixedWindowLimiter
from relay.config import ALL_CAPABILITIES, RelaySettings
from relay.delivery.fake_transport import FakeCloudPushTransport, FakeWebPushTransport
from relay.services import build_services
from relay.subscription.subscription import DeliveryTarget
from relay.tenant.tenant_key import TenantContext, TenantKey

ORIGIN = "a.example"
OTHER_ORIGIN = "b.example"

WEB_PUSH_TARGET = DeliveryTarget(
    endpoint="https://push.example.net/send/abc123",
    p256dh="BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM",
    auth="tBHItJI5svbpez7KI4CCXg",
)


@pytest.fixture()
def settings():
    return RelaySettings(
        environment="test",
        cloud_push_backend="fake",
        web_push_backend="fake",
        rate_limit_backend="memory",
    )


@pytest.fixture()
def cloud_push():
    return FakeCloudPushTransport()


@pytest.fixture()
def web_push():
    return FakeWebPushTransport()


@pytest.fixture()
def services(settings, cloud_push, web_push):
    return build_services(settings, cloud_push=cloud_push, web_push=web_push)


@pytest.fixture()
def limiter():
    return InMemoryFixedWindowLimiter()


@pytest.fixture()
def client(services, limiter):
    return TestClient(create_app(services, limiter=limiter))


def issue_key(origin=ORIGIN, capabilities=ALL_CAPABILITIES, **kwargs):
    tenant_key = TenantKey.issue(origin=origin, capabilities=capabilities, created_by="tests", **kwargs)
    current_domain.repository_for(TenantKey).add(tenant_key)
    return tenant_key.key


@pytest.fixture()
def api_key():
    return issue_key()


@pytest.fixture()
def other_api_key():
    return issue_key(origin=OTHER_ORIGIN)


@pytest.fixture()
def auth_headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture()
def other_auth_headers(other_api_key):
    return {"Authorization": f"Bearer {other_api_key}"}


@pytest.fixture()
def context():
    return TenantContext(
        origin=ORIGIN,
        capabilities=frozenset(ALL_CAPABILITIES),
        environment="production",
        api_key="k" * 64,
    )


@pytest.fixture()
def other_context():
    return TenantContext(
        origin=OTHER_ORIGIN,
        capabilities=frozenset(ALL_CAPABILITIES),
        environment="production",
        api_key="o" * 64,
    )


@pytest.fixture()
def key_factory():
    """Issue and persist a TenantKey, returning the secret."""
    return issue_key
