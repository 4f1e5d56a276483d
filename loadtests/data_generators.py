"""Faker-based data generators for Locust load test scenarios.

Payloads use the camelCase field names of the relay's request schemas and
stay inside their length limits (title 100, body 200).
"""

import random
import uuid

from faker import Faker

fake = Faker()


def unique_user_id() -> str:
    return f"lt-user-{uuid.uuid4().hex[:12]}"


def fcm_token() -> str:
    """Cloud push tokens are opaque; only their presence matters to the relay."""
    return f"lt-{uuid.uuid4().hex}:{fake.sha256()[:100]}"


def web_push_subscription() -> dict:
    """A browser PushSubscription JSON with a unique endpoint."""
    return {
        "endpoint": f"https://push.loadtest.example/send/{uuid.uuid4().hex}",
        "keys": {"p256dh": fake.sha256(), "auth": fake.md5()[:22]},
        "expirationTime": None,
    }


def device_info() -> dict:
    return {
        "platform": random.choice(["android", "ios", "web"]),
        "appVersion": f"{random.randint(1, 5)}.{random.randint(0, 9)}.{random.randint(0, 20)}",
        "deviceId": fake.uuid4(),
    }


def registration_data(user_id: str) -> dict:
    """RegisterSubscriptionRequest payload, cloud push or Web Push at random."""
    payload = {"userId": user_id, "deviceInfo": device_info()}
    if random.random() < 0.7:
        payload["fcmToken"] = fcm_token()
    else:
        payload.update(web_push_subscription())
    return payload


def notification_data(user_key: str) -> dict:
    """SendNotificationRequest payload."""
    return {
        "userKey": user_key,
        "notification": {
            "title": fake.sentence(nb_words=5)[:100],
            "body": fake.sentence(nb_words=15)[:200],
            "data": {"orderId": str(random.randint(1000, 99999)), "kind": random.choice(["order", "promo", "chat"])},
        },
    }
