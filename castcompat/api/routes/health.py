"""
Health and cache routes for castcompat
"""

import time
from fastapi import APIRouter

from ... import __version__
from ...models import HealthResponse, CacheClearResponse
from ...service import get_service

router = APIRouter()

# Start time - set by lifespan
start_time: float = 0


def set_start_time(t: float) -> None:
    """Set the server start time."""
    global start_time
    start_time = t


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    service = get_service()

    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=time.time() - start_time,
        cached_files=len(service.cache),
        cache_stats=service.cache.stats.to_dict()
    )


@router.delete("/api/cache", response_model=CacheClearResponse)
async def clear_cache():
    """Drop every cached probe result."""
    return CacheClearResponse(cleared=get_service().cache.clear())
