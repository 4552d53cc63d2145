"""FastAPI dependencies shared by the routes."""

from fastapi import Depends, Request

from gateway.core.base import RateLimited
from gateway.services import GatewayServices
from gateway.utils.rate_limiter import get_client_id


def get_services(request: Request) -> GatewayServices:
    """Get the service container owned by the running app."""
    return request.app.state.services


async def enforce_rate_limit(
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> str:
    """Admit the caller or raise RateLimited.

    Returns:
        The client identifier that was admitted.
    """
    client_id = get_client_id(request)
    limiter = services.rate_limiter
    if not await limiter.admit(client_id):
        raise RateLimited(retry_after=await limiter.retry_after(client_id))
    return client_id
