"""Error taxonomy shared by the relay core and its HTTP boundary.

Each error carries the HTTP status it maps to and a stable ``code`` string
so callers can branch on it (e.g. prune tokens on ``invalid_token``).
"""

from enum import Enum


class AuthErrorKind(Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID = "invalid"
    DEACTIVATED = "deactivated"
    EXPIRED = "expired"


class ConsentErrorKind(Enum):
    NO_PERMISSION = "no_permission"
    NO_DELIVERY_TARGET = "no_delivery_target"


class DeliveryErrorKind(Enum):
    INVALID_TOKEN = "invalid_token"
    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"


class RelayError(Exception):
    """Base class for errors surfaced to relay callers."""

    status_code = 500
    error = "Internal Server Error"
    code = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.error
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "code": self.code}


_AUTH_MESSAGES = {
    AuthErrorKind.MISSING: "API key required in Authorization header",
    AuthErrorKind.MALFORMED: "Invalid API key format",
    AuthErrorKind.INVALID: "Invalid API key",
    AuthErrorKind.DEACTIVATED: "API key has been deactivated",
    AuthErrorKind.EXPIRED: "API key has expired",
}


class AuthError(RelayError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, kind: AuthErrorKind, message: str | None = None):
        self.kind = kind
        self.code = kind.value
        super().__init__(message or _AUTH_MESSAGES[kind])


class CapabilityError(RelayError):
    """The tenant key is valid but lacks the capability the operation needs."""

    status_code = 403
    error = "Forbidden"
    code = "missing_capability"

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"Permission '{capability}' required for this operation")


class NotFoundError(RelayError):
    status_code = 404
    error = "Not Found"
    code = "not_found"


class SubscriptionNotFound(NotFoundError):
    error = "Subscription Not Found"

    def __init__(self, identity_key: str):
        self.identity_key = identity_key
        super().__init__("No subscription found for this user key")


class DispatchRecordNotFound(NotFoundError):
    error = "Notification Not Found"

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__("No notification found with this message ID")


_CONSENT_MESSAGES = {
    ConsentErrorKind.NO_PERMISSION: "Origin does not have permission to send notifications to this user",
    ConsentErrorKind.NO_DELIVERY_TARGET: "User has no complete delivery target for notifications",
}


class ConsentError(RelayError):
    status_code = 403
    error = "Permission Denied"

    def __init__(self, kind: ConsentErrorKind):
        self.kind = kind
        self.code = kind.value
        super().__init__(_CONSENT_MESSAGES[kind])


class DeliveryError(RelayError):
    """A delivery provider rejected or did not answer the push."""

    _STATUS = {
        DeliveryErrorKind.INVALID_TOKEN: (410, "Invalid Token"),
        DeliveryErrorKind.TRANSPORT_FAILURE: (500, "Delivery Failed"),
        DeliveryErrorKind.TIMEOUT: (504, "Delivery Timeout"),
    }

    def __init__(self, kind: DeliveryErrorKind, reason: str | None = None):
        self.kind = kind
        self.code = kind.value
        self.reason = reason
        self.status_code, self.error = self._STATUS[kind]
        super().__init__(reason or "Failed to send notification")
