"""Pydantic request/response models for the relay API.

Wire names are camelCase (``userKey``, ``fcmToken``); Python attributes stay
snake_case. API schemas are kept separate from the domain objects they map to.
"""

from typing import Annotated

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, UrlConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class WebPushKeys(CamelModel):
    p256dh: str = Field(..., min_length=1, max_length=255)
    auth: str = Field(..., min_length=1, max_length=255)


class DeviceInfo(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    platform: str | None = Field(default=None, examples=["android"])
    app_version: str | None = None
    device_id: str | None = None


class RegisterSubscriptionRequest(CamelModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    fcm_token: str | None = Field(default=None, max_length=1024)
    endpoint: str | None = Field(default=None, max_length=2048)
    keys: WebPushKeys | None = None
    expiration_time: float | None = None  # accepted from browser PushSubscription JSON, not stored
    device_info: DeviceInfo | None = None

    @model_validator(mode="after")
    def _require_a_delivery_target(self):
        if not self.fcm_token and not (self.endpoint and self.keys):
            raise ValueError("Either fcmToken or a complete endpoint and keys pair is required")
        return self


# Keys cloud push refuses inside the data section
RESERVED_DATA_KEYS = frozenset({"from", "notification", "message_type"})
RESERVED_DATA_PREFIXES = ("google", "gcm")

IconUrl = Annotated[AnyUrl, UrlConstraints(max_length=2048)]


class NotificationPayload(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1, max_length=200)
    icon: IconUrl | None = None
    badge: int | None = Field(default=None, ge=0)
    data: dict = Field(default_factory=dict)

    @field_validator("data")
    @classmethod
    def _reject_reserved_keys(cls, data: dict) -> dict:
        reserved = sorted(
            key for key in data if key.lower() in RESERVED_DATA_KEYS or key.lower().startswith(RESERVED_DATA_PREFIXES)
        )
        if reserved:
            raise ValueError(f"Reserved data keys are not allowed: {', '.join(reserved)}")
        return data


class SendNotificationRequest(CamelModel):
    user_key: str = Field(..., min_length=1, max_length=255)
    notification: NotificationPayload


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class RegisterSubscriptionResponse(CamelModel):
    success: bool = True
    user_key: str


class RevokeSubscriptionResponse(CamelModel):
    success: bool = True
    message: str = "Successfully unsubscribed"


class PermissionResponse(CamelModel):
    user_key: str
    origin: str
    has_permission: bool
    timestamp: int | None = None
    active: bool


class SendNotificationResponse(CamelModel):
    success: bool = True
    message_id: str
    timestamp: int


class NotificationStatusResponse(CamelModel):
    message_id: str
    status: str
    timestamp: int
    origin: str
