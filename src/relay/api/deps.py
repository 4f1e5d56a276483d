"""FastAPI dependencies: service lookup and bearer-key authorization."""

from fastapi import BackgroundTasks, Depends, Header, Request

from relay.domain import relay
from relay.services import RelayServices
from relay.tenant.tenant_key import TenantContext


def get_services(request: Request) -> RelayServices:
    return request.app.state.services


def bearer_key(authorization: str | None = Header(default=None)) -> str | None:
    """Extract the key from ``Authorization: Bearer <key>``; anything else counts as missing."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer ") :].strip() or None


def in_domain_context(fn, *args, **kwargs):
    """Call ``fn`` with the relay domain pushed; worker threads start without one."""
    with relay.domain_context():
        return fn(*args, **kwargs)


def background_scheduler(background_tasks: BackgroundTasks):
    """Adapt BackgroundTasks to the ``schedule(fn, **kwargs)`` shape the authority expects."""

    def schedule(fn, **kwargs):
        background_tasks.add_task(in_domain_context, fn, **kwargs)

    return schedule


async def tenant_context(
    request: Request,
    background_tasks: BackgroundTasks,
    presented_key: str | None = Depends(bearer_key),
    services: RelayServices = Depends(get_services),
) -> TenantContext:
    return services.authority.authorize(
        presented_key,
        endpoint=request.url.path,
        method=request.method,
        user_agent=request.headers.get("user-agent"),
        ip=request.client.host if request.client else None,
        schedule=background_scheduler(background_tasks),
    )
