"""
System status and health API endpoints.
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from adsb2dd.core import get_settings
from adsb2dd.schemas import HealthResponse, StatusResponse
from adsb2dd.services.scheduler import get_scheduler
from adsb2dd.services.sessions import SessionStore, get_session_store

router = APIRouter(prefix="/api", tags=["System"])


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Returns overall status:
- `healthy`: background poller running
- `degraded`: background poller not running, sessions will not update
    """,
)
async def health_check(store: SessionStore = Depends(get_session_store)):
    scheduler = get_scheduler()
    running = scheduler is not None and scheduler.running
    return {
        "status": "healthy" if running else "degraded",
        "sessions": len(store),
        "max_sessions": store.max_sessions,
        "scheduler_running": running,
        "timestamp": _timestamp(),
    }


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="System Status",
    description="Live sessions and background poller statistics.",
)
async def get_status(store: SessionStore = Depends(get_session_store)):
    """Session list without refreshing any session's idle clock."""
    scheduler = get_scheduler()
    return {
        "sessions": [session.summary() for session in store.sessions()],
        "tick_count": scheduler.tick_count if scheduler else 0,
        "last_tick_at": scheduler.last_tick_at if scheduler else None,
        "poll_interval": scheduler.interval if scheduler else get_settings().poll_interval,
        "timestamp": _timestamp(),
    }
