"""Health check router.

Endpoints:
    GET /api/health - Liveness check, no auth required
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from .. import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check - no auth required."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }
