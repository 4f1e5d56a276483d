"""Delivery transport factory.

Builds the cloud-push and Web Push transports named by settings:
- ``fake`` keeps deliveries in memory (development and tests)
- ``firebase`` / ``pywebpush`` talk to the real providers
"""

from relay.config import RelaySettings
from relay.delivery.port import DeliveryTransport


def build_cloud_push(settings: RelaySettings) -> DeliveryTransport:
    if settings.cloud_push_backend == "fake":
        from relay.delivery.fake_transport import FakeCloudPushTransport

        return FakeCloudPushTransport()
    if settings.cloud_push_backend == "firebase":
        from relay.delivery.fcm_transport import CloudPushTransport

        return CloudPushTransport.from_settings(settings)
    raise ValueError(f"Unknown cloud push backend: {settings.cloud_push_backend}")


def build_web_push(settings: RelaySettings) -> DeliveryTransport:
    if settings.web_push_backend == "fake":
        from relay.delivery.fake_transport import FakeWebPushTransport

        return FakeWebPushTransport()
    if settings.web_push_backend == "pywebpush":
        from relay.delivery.webpush_transport import WebPushTransport

        return WebPushTransport.from_settings(settings)
    raise ValueError(f"Unknown web push backend: {settings.web_push_backend}")
