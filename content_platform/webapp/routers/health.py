"""
Health check endpoint.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint; reports server time in the configured zone."""
    timezone = request.app.state.config.app.timezone
    return {
        "status": "healthy",
        "service": "content-platform",
        "timezone": timezone,
        "server_time": datetime.now(ZoneInfo(timezone)).isoformat(),
    }
