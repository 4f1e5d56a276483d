"""Per-user state tracking for Locust load test scenarios.

Each Locust user keeps its own state; nothing is shared across users.
"""

from dataclasses import dataclass, field


@dataclass
class SubscriberState:
    """Tracks one simulated subscriber from registration to revocation."""

    user_id: str | None = None
    user_key: str | None = None
    message_ids: list[str] = field(default_factory=list)
    revoked: bool = False
