"""Subscriber journey: register, check permission, send, poll status, revoke.

Steps run in order inside a SequentialTaskSet; a failed registration
interrupts the journey since every later step needs the user key.
"""

import os

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import notification_data, registration_data, unique_user_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import SubscriberState

API = "/api/v1"


def auth_headers() -> dict:
    return {"Authorization": f"Bearer {os.environ.get('RELAY_LOADTEST_API_KEY', 'dev-test-api-key-12345')}"}


class SubscriberJourney(SequentialTaskSet):
    def on_start(self):
        self.state = SubscriberState(user_id=unique_user_id())
        self.headers = auth_headers()

    @task
    def register(self):
        with self.client.post(
            f"{API}/subscriptions/register",
            json=registration_data(self.state.user_id),
            headers=self.headers,
            catch_response=True,
            name="POST /subscriptions/register",
        ) as resp:
            if resp.status_code == 200:
                self.state.user_key = resp.json()["userKey"]
            else:
                resp.failure(f"Registration failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def check_permission(self):
        with self.client.get(
            f"{API}/subscriptions/permissions/{self.state.user_key}",
            headers=self.headers,
            catch_response=True,
            name="GET /subscriptions/permissions/{userKey}",
        ) as resp:
            if resp.status_code != 200 or not resp.json().get("hasPermission"):
                resp.failure(f"Permission missing after registration: {extract_error_detail(resp)}")

    @task
    def send(self):
        with self.client.post(
            f"{API}/notifications/send",
            json=notification_data(self.state.user_key),
            headers=self.headers,
            catch_response=True,
            name="POST /notifications/send",
        ) as resp:
            if resp.status_code == 200:
                self.state.message_ids.append(resp.json()["messageId"])
            else:
                resp.failure(f"Send failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def poll_status(self):
        for message_id in self.state.message_ids:
            self.client.get(
                f"{API}/notifications/status/{message_id}",
                headers=self.headers,
                name="GET /notifications/status/{messageId}",
            )

    @task
    def revoke(self):
        with self.client.delete(
            f"{API}/subscriptions/{self.state.user_key}",
            headers=self.headers,
            catch_response=True,
            name="DELETE /subscriptions/{userKey}",
        ) as resp:
            if resp.status_code == 200:
                self.state.revoked = True
            else:
                resp.failure(f"Revoke failed: {resp.status_code} {extract_error_detail(resp)}")

    @task
    def send_after_revoke(self):
        # A revoked subscription must be refused with 403
        with self.client.post(
            f"{API}/notifications/send",
            json=notification_data(self.state.user_key),
            headers=self.headers,
            catch_response=True,
            name="POST /notifications/send [revoked]",
        ) as resp:
            if resp.status_code == 403:
                resp.success()
            else:
                resp.failure(f"Expected 403 after revoke, got {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class SubscriberUser(HttpUser):
    tasks = [SubscriberJourney]
    wait_time = between(0.5, 2)
