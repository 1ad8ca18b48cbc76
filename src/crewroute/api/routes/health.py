"""Liveness and distance-provider checks."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    return {"status": "ok"}


def _osrm_check():
    # Imported on demand so the app starts without a reachable OSRM.
    from ...services.routing.osrm_client import check_health

    return check_health


@router.get("/health/distance", status_code=status.HTTP_200_OK)
def health_distance() -> dict:
    """Which distance source planning will use, and whether OSRM answers."""
    if not settings.osrm_base_url:
        return {"service": "haversine", "healthy": True, "configured": False}
    healthy = _osrm_check()(settings.osrm_base_url)
    return {
        "service": "osrm",
        "profile": settings.osrm_profile,
        "healthy": healthy,
        "configured": True,
        "fallback": None if healthy else "haversine",
    }
