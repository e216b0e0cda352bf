import logging
import math
from fastapi import APIRouter, Depends, HTTPException, status

from chatcache.api.deps import enforce_rate_limit, get_store
from chatcache.core.store import SessionStore
from chatcache.models.schemas import DeleteSessionResponse, ErrorResponse, SessionInfo, SessionListResponse

router = APIRouter(prefix="/api", dependencies=[Depends(enforce_rate_limit)])
logger = logging.getLogger(__name__)


def format_minutes(seconds: float) -> str:
    return f"{max(0, math.floor(seconds / 60))} minutes"


@router.delete(
    "/session/{session_id}",
    tags=["Sessions"],
    response_model=DeleteSessionResponse,
    responses={404: {"model": ErrorResponse}},
)
def delete_session(session_id: str, store: SessionStore = Depends(get_store)):
    """
    Clears a session and its conversation history.
    """
    if not store.delete(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    logger.info(f"Session {session_id[:8]}... deleted.")
    return DeleteSessionResponse(success=True, message=f"Session {session_id} cleared.")


@router.get("/sessions", tags=["Sessions"], response_model=SessionListResponse)
def list_sessions(store: SessionStore = Depends(get_store)):
    """
    Point-in-time listing of live sessions, for debugging.
    """
    now = store.clock()
    sessions = [
        SessionInfo(
            session_id=summary.session_id,
            message_count=summary.message_count,
            last_active=int(summary.last_active * 1000),
            expires_in=format_minutes(store.ttl_seconds - (now - summary.last_active)),
        )
        for summary in store.list()
    ]
    return SessionListResponse(sessions=sessions, total=len(sessions))
