"""Process-wide service graph.

Everything is constructed once at startup and handed to the HTTP layer (or
a test) explicitly; nothing is lazily created behind a global.
"""

from dataclasses import dataclass

from relay.audit.recorder import EventRecorder
from relay.config import RelaySettings
from relay.consent.guard import ConsentGuard
from relay.delivery import build_cloud_push, build_web_push
from relay.delivery.port import DeliveryTransport
from relay.delivery.router import DeliveryRouter
from relay.dispatch.service import DispatchService
from relay.subscription.registration import RegistrationService
from relay.subscription.store import SubscriptionStore
from relay.tenant.authority import TenantAuthority


@dataclass
class RelayServices:
    settings: RelaySettings
    recorder: EventRecorder
    authority: TenantAuthority
    store: SubscriptionStore
    guard: ConsentGuard
    router: DeliveryRouter
    registration: RegistrationService
    dispatch: DispatchService


def build_services(
    settings: RelaySettings,
    cloud_push: DeliveryTransport | None = None,
    web_push: DeliveryTransport | None = None,
) -> RelayServices:
    """Wire the relay. Transports default to the backends named in ``settings``."""
    recorder = EventRecorder(retain_bodies=settings.retain_notification_bodies)
    authority = TenantAuthority(settings, recorder)
    store = SubscriptionStore(recorder)
    guard = ConsentGuard()
    router = DeliveryRouter(
        cloud_push=cloud_push or build_cloud_push(settings),
        web_push=web_push or build_web_push(settings),
    )

    return RelayServices(
        settings=settings,
        recorder=recorder,
        authority=authority,
        store=store,
        guard=guard,
        router=router,
        registration=RegistrationService(store, guard),
        dispatch=DispatchService(authority, store, guard, router, recorder),
    )
