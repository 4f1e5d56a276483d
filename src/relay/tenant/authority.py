"""Resolve a presented bearer key to a TenantContext.

Checks run in a fixed order (missing, development sentinel, length, lookup,
active flag, expiry) so the first failing condition decides the error kind.
A successful authorization is attributed to the key in the usage log; that
write is handed to ``schedule`` when the caller supplies one (the HTTP layer
passes background tasks) and never fails the request.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from relay.audit.recorder import EventRecorder
from relay.config import ALL_CAPABILITIES, RelaySettings
from relay.errors import AuthError, AuthErrorKind
from relay.tenant.tenant_key import KeyEnvironment, TenantContext, TenantKey

logger = structlog.get_logger(__name__)

Scheduler = Callable[..., None]


class TenantAuthority:
    def __init__(self, settings: RelaySettings, recorder: EventRecorder, clock: Callable[[], datetime] | None = None):
        self.settings = settings
        self.recorder = recorder
        self._clock = clock or (lambda: datetime.now(UTC))

    def _development_context(self, presented_key: str) -> TenantContext:
        return TenantContext(
            origin=self.settings.dev_origin,
            capabilities=frozenset(ALL_CAPABILITIES),
            environment=KeyEnvironment.DEVELOPMENT.value,
            api_key=presented_key,
        )

    def authorize(
        self,
        presented_key: str | None,
        *,
        endpoint: str | None = None,
        method: str | None = None,
        user_agent: str | None = None,
        ip: str | None = None,
        schedule: Scheduler | None = None,
    ) -> TenantContext:
        if not presented_key:
            raise AuthError(AuthErrorKind.MISSING)

        if self.settings.allow_dev_key and presented_key == self.settings.dev_api_key:
            logger.debug("Development key accepted", origin=self.settings.dev_origin)
            return self._development_context(presented_key)

        if len(presented_key) < self.settings.min_api_key_length:
            raise AuthError(AuthErrorKind.MALFORMED)

        try:
            tenant_key = current_domain.repository_for(TenantKey).get(presented_key)
        except ObjectNotFoundError:
            logger.warning("Unknown API key presented", endpoint=endpoint, ip=ip)
            raise AuthError(AuthErrorKind.INVALID) from None

        if not tenant_key.active:
            raise AuthError(AuthErrorKind.DEACTIVATED)

        if tenant_key.is_expired(self._clock()):
            raise AuthError(AuthErrorKind.EXPIRED)

        context = TenantContext(
            origin=tenant_key.origin,
            capabilities=frozenset(tenant_key.capability_list()),
            environment=tenant_key.environment,
            api_key=presented_key,
        )

        usage = {
            "api_key": presented_key,
            "origin": context.origin,
            "endpoint": endpoint,
            "method": method,
            "user_agent": user_agent,
            "ip": ip,
        }
        if schedule is not None:
            schedule(self.recorder.record_usage, **usage)
        else:
            self.recorder.record_usage(**usage)

        return context
