"""Push relay load testing — Locust entry point.

Every simulated user authenticates with the key in ``RELAY_LOADTEST_API_KEY``
(issue one with ``python src/manage.py issue-key``). The development key is
used when the variable is unset, which only works outside production.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Subscriber journeys only:
    locust -f loadtests/locustfile.py SubscriberUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py SubscriberUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest

Raise RELAY_RATE_LIMIT_SEND / RELAY_RATE_LIMIT_SUBSCRIPTIONS on the target
first, or most requests will come back 429.
"""

import logging
import time

from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.stress import SendFloodUser  # noqa: F401
from loadtests.scenarios.subscribers import SubscriberUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log the relay's error code and message for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
