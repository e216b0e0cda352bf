from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Enums ---

class InterventionLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- API Request Models ---

class ChatRequest(_CamelModel):
    # Optional here so a missing message is reported as 400, not 422.
    message: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


# --- API Response Models ---

class ChatResponse(_CamelModel):
    response: str
    session_id: str = Field(alias="sessionId")
    history_length: int = Field(alias="historyLength")
    metrics: Optional[Dict[str, Any]] = None
    intervention_level: Optional[str] = Field(default=None, alias="interventionLevel")
    warden_intent: Optional[Dict[str, Any]] = Field(default=None, alias="wardenIntent")


class ErrorResponse(BaseModel):
    error: str


class DeleteSessionResponse(BaseModel):
    success: bool
    message: str


class SessionInfo(_CamelModel):
    session_id: str = Field(alias="sessionId")
    message_count: int = Field(alias="messageCount")
    last_active: int = Field(alias="lastActive", description="Epoch milliseconds.")
    expires_in: str = Field(alias="expiresIn")


class SessionListResponse(BaseModel):
    sessions: List[SessionInfo] = Field(default_factory=list)
    total: int


class HealthResponse(_CamelModel):
    status: str = "healthy"
    agent: str
    version: str
    active_sessions: int = Field(alias="activeSessions")
    max_sessions: int = Field(alias="maxSessions")
    session_ttl: str = Field(alias="sessionTTL")
