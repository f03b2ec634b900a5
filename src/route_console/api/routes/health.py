"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_planner_client():
    """Lazy import to avoid startup failures."""
    from ...services.planning.client import PlannerClient

    return PlannerClient()


@router.get("/health/planner", status_code=status.HTTP_200_OK)
async def health_planner() -> dict:
    """Check that the route-planning backend is reachable."""
    client = _get_planner_client()
    try:
        healthy = await client.check_health()
    finally:
        await client.aclose()
    return {
        "service": "planner",
        "base_url": client.base_url,
        "healthy": healthy,
        "geocoder_configured": bool(settings.geocoder_api_key),
    }
