from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

SWEEP_BATCH_SIZE = 256


class Role(str, Enum):
    HUMAN = "human"
    AGENT = "agent"


@dataclass(frozen=True)
class Message:
    role: Role
    content: Union[str, dict[str, Any], list[Any]]


@dataclass
class Session:
    id: str
    last_active: float
    created_at: float
    history: list[Message] = field(default_factory=list)


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    message_count: int
    last_active: float


class SessionNotFoundError(KeyError):
    """Raised when a history append targets a session the store does not hold."""
    pass


class SessionStore:
    """
    Bounded, self-expiring in-memory session store.

    One lock guards the session map together with every session's history
    and last-active timestamp. Expiry is driven externally through
    sweep_expired(); reads never expire entries lazily.
    """

    def __init__(self, ttl_seconds: float, max_sessions: int, clock: Clock = time.time):
        if max_sessions <= 0:
            raise ValueError("max_sessions must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return session
            if len(self._sessions) >= self.max_sessions:
                self._evict_oldest_locked()
            now = self.clock()
            session = Session(id=session_id, last_active=now, created_at=now)
            self._sessions[session_id] = session
        logger.info(f"New session created: {session_id}")
        return session

    def _evict_oldest_locked(self) -> None:
        # min() keeps the first minimum, so ties fall to insertion order.
        oldest = min(self._sessions.values(), key=lambda s: s.last_active, default=None)
        if oldest is None:
            return
        del self._sessions[oldest.id]
        logger.warning(f"Max sessions reached. Removed oldest: {oldest.id[:8]}...")

    def touch(self, session_id: str, now: float | None = None) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            stamp = self.clock() if now is None else now
            if stamp > session.last_active:
                session.last_active = stamp
            return True

    def append_message(self, session_id: str, message: Message) -> int:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            session.history.append(message)
            return len(session.history)

    def history(self, session_id: str) -> list[Message]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return list(session.history)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def list(self) -> list[SessionSummary]:
        with self._lock:
            return [
                SessionSummary(
                    session_id=s.id,
                    message_count=len(s.history),
                    last_active=s.last_active,
                )
                for s in self._sessions.values()
            ]

    def size(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __len__(self) -> int:
        return self.size()

    def sweep_expired(self, now: float | None = None, batch_size: int = SWEEP_BATCH_SIZE) -> int:
        """
        Removes every session idle for longer than the TTL as of `now`.

        Keys are snapshotted once, then candidates are re-checked and removed
        in batches so the lock is never held for the whole scan. A session
        touched after `now - ttl` survives even if it was stale when the
        snapshot was taken.
        """
        if now is None:
            now = self.clock()
        with self._lock:
            candidates = list(self._sessions.keys())

        removed = 0
        for start in range(0, len(candidates), batch_size):
            with self._lock:
                for session_id in candidates[start : start + batch_size]:
                    session = self._sessions.get(session_id)
                    if session is not None and now - session.last_active > self.ttl_seconds:
                        del self._sessions[session_id]
                        removed += 1
        return removed
