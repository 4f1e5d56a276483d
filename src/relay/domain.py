"""Relay bounded context — tenant-scoped push subscriptions and dispatch.

Registered websites (tenants) register their users' devices here and send
notifications to them through an opaque user key. The relay owns consent
bookkeeping per origin and chooses the push transport, so tenants never see
device tokens.
"""

from protean.domain import Domain

from relay.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

relay = Domain(name="relay")
