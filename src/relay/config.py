"""Runtime settings for the relay service.

Values are read from ``RELAY_*`` environment variables (and an optional
``.env`` file). Protean's own infrastructure settings live in
``domain.toml`` next to the domain module.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALL_CAPABILITIES = ("notifications:send", "subscriptions:manage")


class RelaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="development, staging, test or production")
    service_name: str = Field(default="Push Relay")
    version: str = Field(default="1.0.0")

    # Tenant authorization
    min_api_key_length: int = Field(default=32)
    allow_dev_key: bool = Field(default=True, description="Accept the development sentinel key (never in production)")
    dev_api_key: str = Field(default="dev-test-api-key-12345")
    dev_origin: str = Field(default="localhost:3000")

    # Delivery backends
    cloud_push_backend: str = Field(default="fake", description="fake or firebase")
    web_push_backend: str = Field(default="fake", description="fake or pywebpush")
    firebase_project_id: str | None = None
    firebase_service_account_path: str | None = None
    vapid_private_key: str | None = None
    vapid_public_key: str | None = None
    vapid_contact_email: str = Field(default="admin@relay.local")
    delivery_timeout_seconds: float = Field(default=10.0, gt=0)

    # Audit
    retain_notification_bodies: bool = Field(
        default=True,
        description="Store notification bodies on dispatch records; a SHA-256 fingerprint is kept otherwise",
    )

    # Admission control
    rate_limit_enabled: bool = True
    rate_limit_backend: str = Field(default="memory", description="memory or redis")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_timeout_seconds: float = Field(default=2.0, gt=0)
    rate_limit_window_seconds: int = Field(default=15 * 60)
    rate_limit_send: int = Field(default=100)
    rate_limit_subscriptions: int = Field(default=50)
    rate_limit_default: int = Field(default=200)

    # Logging
    log_level: str | None = None
    log_dir: str | None = None

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @model_validator(mode="after")
    def _dev_key_never_in_production(self):
        if self.is_production:
            self.allow_dev_key = False
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> RelaySettings:
    return RelaySettings()
