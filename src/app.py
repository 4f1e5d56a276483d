"""Push relay FastAPI application.

Builds settings and the service graph once at import time and exposes
``app`` for uvicorn. PROTEAN_ENV selects the domain.toml overlay; RELAY_*
variables configure transports, limits and logging.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

from relay.api.application import create_app
from relay.config import get_settings
from relay.domain import relay
from relay.services import build_services

relay.init()

with relay.domain_context():
    services = build_services(get_settings())

app = create_app(services)
