"""FastAPI application factory for the relay.

The caller builds the service graph (``relay.services.build_services``) and
passes it in, so tests can wire fake transports and a private limiter.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from relay.api.errors import register_exception_handlers
from relay.api.health import router as health_router
from relay.api.rate_limit import FixedWindowLimiter, build_limiter, rate_limit_middleware
from relay.api.routes import notifications_router, subscriptions_router
from relay.domain import relay
from relay.services import RelayServices
from relay.utils.logging import add_context, clear_context

API_PREFIX = "/api/v1"


def create_app(services: RelayServices, limiter: FixedWindowLimiter | None = None) -> FastAPI:
    settings = services.settings

    app = FastAPI(
        title=settings.service_name,
        version=settings.version,
        description="Tenant-scoped push subscription and notification relay",
    )
    app.state.services = services

    # Innermost first: each add wraps everything added before it
    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the relay domain context and bind request fields onto log lines."""
        clear_context()
        add_context(path=request.url.path, method=request.method)
        with relay.domain_context():
            response = await call_next(request)
        return response

    if settings.rate_limit_enabled:
        app.state.limiter = limiter or build_limiter(settings)
        app.middleware("http")(rate_limit_middleware(app.state.limiter, settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "Origin"],
    )

    register_exception_handlers(app, expose_details=not settings.is_production)

    app.include_router(health_router)
    app.include_router(subscriptions_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)

    if not settings.is_production:

        @app.get("/", include_in_schema=False)
        async def root():
            return {
                "service": settings.service_name,
                "version": settings.version,
                "status": "active",
                "endpoints": {
                    "health": "/health",
                    "register": f"POST {API_PREFIX}/subscriptions/register",
                    "revoke": f"DELETE {API_PREFIX}/subscriptions/{{userKey}}",
                    "permissions": f"GET {API_PREFIX}/subscriptions/permissions/{{userKey}}",
                    "send": f"POST {API_PREFIX}/notifications/send",
                    "status": f"GET {API_PREFIX}/notifications/status/{{messageId}}",
                },
            }

    return app
