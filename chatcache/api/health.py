from fastapi import APIRouter, Depends

from chatcache.api.deps import get_store
from chatcache.api.sessions import format_minutes
from chatcache.core.store import SessionStore
from chatcache.models.schemas import HealthResponse

router = APIRouter()

AGENT_NAME = "ZenGuard"
AGENT_VERSION = "1.0.0"


@router.get("/health", tags=["System"], response_model=HealthResponse)
def health_check(store: SessionStore = Depends(get_store)):
    """
    Reports liveness together with session cache occupancy and limits.
    """
    return HealthResponse(
        status="healthy",
        agent=AGENT_NAME,
        version=AGENT_VERSION,
        active_sessions=store.size(),
        max_sessions=store.max_sessions,
        session_ttl=format_minutes(store.ttl_seconds),
    )
