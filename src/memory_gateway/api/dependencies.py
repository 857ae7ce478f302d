"""API dependencies."""

from fastapi import HTTPException

from memory_gateway.services.background import DeferredWorkSupervisor
from memory_gateway.services.gateway import GatewayService

# These will be set by the main.py lifespan
gateway_service: GatewayService | None = None
supervisor: DeferredWorkSupervisor | None = None


def get_gateway_service() -> GatewayService:
    """Get the gateway pipeline shared by all requests."""
    if gateway_service is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return gateway_service


def get_supervisor() -> DeferredWorkSupervisor:
    """Get the supervisor that owns post-response work."""
    if supervisor is None:
        raise HTTPException(status_code=503, detail="Deferred work supervisor not initialized")
    return supervisor
