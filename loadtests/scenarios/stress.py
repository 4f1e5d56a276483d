"""Stress scenario: repeated sends against a small pool of subscribers.

Exercises the send path (lookup, consent check, delivery, audit write)
without the registration overhead of the journey scenario.
"""

import random

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import notification_data, registration_data, unique_user_id
from loadtests.scenarios.subscribers import API, auth_headers


class SendFloodUser(HttpUser):
    """Registers a handful of subscribers, then sends as fast as pacing allows."""

    wait_time = constant_pacing(0.1)  # ~10 requests/sec per user
    pool_size = 5

    def on_start(self):
        self.headers = auth_headers()
        self.user_keys = []
        for _ in range(self.pool_size):
            resp = self.client.post(
                f"{API}/subscriptions/register",
                json=registration_data(unique_user_id()),
                headers=self.headers,
                name="[STRESS] POST /subscriptions/register",
            )
            if resp.status_code == 200:
                self.user_keys.append(resp.json()["userKey"])

    @task(10)
    def send(self):
        if not self.user_keys:
            return
        self.client.post(
            f"{API}/notifications/send",
            json=notification_data(random.choice(self.user_keys)),
            headers=self.headers,
            name="[STRESS] POST /notifications/send",
        )

    @task(1)
    def health(self):
        self.client.get("/health", name="[STRESS] GET /health")
