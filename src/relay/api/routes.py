"""FastAPI routes for subscriptions and notifications.

Thin adapters: authorize the bearer key, translate the schema into a core
call, translate the result back. Errors propagate as RelayError subclasses
and are rendered by the handlers in ``relay.api.errors``.
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from relay.api.deps import get_services, in_domain_context, tenant_context
from relay.api.schemas import (
    NotificationStatusResponse,
    PermissionResponse,
    RegisterSubscriptionRequest,
    RegisterSubscriptionResponse,
    RevokeSubscriptionResponse,
    SendNotificationRequest,
    SendNotificationResponse,
)
from relay.dispatch.service import NotificationContent, epoch_millis
from relay.errors import DispatchRecordNotFound
from relay.services import RelayServices
from relay.subscription.subscription import DeliveryTarget
from relay.tenant.tenant_key import TenantContext

subscriptions_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])
notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
@subscriptions_router.post("/register", response_model=RegisterSubscriptionResponse)
async def register_subscription(
    body: RegisterSubscriptionRequest,
    context: TenantContext = Depends(tenant_context),
    services: RelayServices = Depends(get_services),
) -> RegisterSubscriptionResponse:
    """Register (or refresh) a device for a user under the caller's origin."""
    target = DeliveryTarget(
        fcm_token=body.fcm_token,
        endpoint=body.endpoint,
        p256dh=body.keys.p256dh if body.keys else None,
        auth=body.keys.auth if body.keys else None,
    )
    device_info = body.device_info.model_dump(exclude_none=True, by_alias=True) if body.device_info else None
    subscription = services.registration.register(context, body.user_id, target, device_info=device_info)
    return RegisterSubscriptionResponse(user_key=subscription.identity_key)


@subscriptions_router.delete("/{user_key}", response_model=RevokeSubscriptionResponse)
async def revoke_subscription(
    user_key: str,
    context: TenantContext = Depends(tenant_context),
    services: RelayServices = Depends(get_services),
) -> RevokeSubscriptionResponse:
    """Withdraw the caller origin's consent for ``user_key``."""
    services.registration.revoke(context, user_key)
    return RevokeSubscriptionResponse()


@subscriptions_router.get("/permissions/{user_key}", response_model=PermissionResponse)
async def get_permission(
    user_key: str,
    context: TenantContext = Depends(tenant_context),
    services: RelayServices = Depends(get_services),
) -> PermissionResponse:
    status = services.registration.permission_status(context, user_key)
    return PermissionResponse(
        user_key=status.user_key,
        origin=status.origin,
        has_permission=status.has_permission,
        timestamp=epoch_millis(status.granted_at) if status.granted_at else None,
        active=status.active,
    )


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@notifications_router.post("/send", response_model=SendNotificationResponse)
async def send_notification(
    body: SendNotificationRequest,
    context: TenantContext = Depends(tenant_context),
    services: RelayServices = Depends(get_services),
) -> SendNotificationResponse:
    """Deliver one notification to the device behind ``userKey``."""
    notification = NotificationContent(
        title=body.notification.title,
        body=body.notification.body,
        icon=str(body.notification.icon) if body.notification.icon else None,
        badge=body.notification.badge,
        data=body.notification.data,
    )
    # Provider calls block, so keep them off the event loop
    receipt = await run_in_threadpool(in_domain_context, services.dispatch.send, context, body.user_key, notification)
    return SendNotificationResponse(message_id=receipt.message_id, timestamp=epoch_millis(receipt.timestamp))


@notifications_router.get("/status/{message_id}", response_model=NotificationStatusResponse)
async def get_notification_status(
    message_id: str,
    context: TenantContext = Depends(tenant_context),
    services: RelayServices = Depends(get_services),
) -> NotificationStatusResponse:
    record = services.recorder.dispatch_record(message_id)
    # Another tenant's record is indistinguishable from a missing one
    if record.origin != context.origin:
        raise DispatchRecordNotFound(message_id)
    return NotificationStatusResponse(
        message_id=str(record.message_id),
        status=record.status,
        timestamp=epoch_millis(record.timestamp),
        origin=record.origin,
    )
