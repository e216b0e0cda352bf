from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from chatcache.core.store import Message, Role, SessionNotFoundError, SessionStore
from chatcache.llm.engine import EngineMetadata, ReasoningEngine

logger = logging.getLogger(__name__)


class InvalidMessageError(ValueError):
    """Raised when a chat request carries no message text."""
    pass


@dataclass(frozen=True)
class ChatTurn:
    response: str
    session_id: str
    history_length: int
    metadata: EngineMetadata


def _new_session_id() -> str:
    return str(uuid.uuid4())


class ChatHandler:
    """
    Runs one chat turn against the session store.

    The engine is stateless, so every call receives the session's entire
    history; continuity lives in the store. No store lock is held while the
    engine runs.
    """

    def __init__(
        self,
        store: SessionStore,
        engine: ReasoningEngine,
        id_factory: Callable[[], str] = _new_session_id,
    ):
        self.store = store
        self.engine = engine
        self.id_factory = id_factory

    def _append_inbound(self, session_id: str, message: Message) -> list[Message]:
        self.store.get_or_create(session_id)
        self.store.touch(session_id)
        self.store.append_message(session_id, message)
        return self.store.history(session_id)

    def _admit_inbound(self, session_id: str, message: Message) -> list[Message]:
        """
        Appends the inbound turn and returns the history the engine should
        see. A session evicted before the append (capacity pressure from
        another request) is recreated once; a second loss propagates.
        """
        try:
            return self._append_inbound(session_id, message)
        except SessionNotFoundError:
            logger.warning(f"Session {session_id[:8]}... evicted before first append; recreating.")
            return self._append_inbound(session_id, message)

    def handle(self, message: str | None, session_id: str | None = None) -> ChatTurn:
        if not message:
            raise InvalidMessageError("Message is required")

        session_id = session_id or self.id_factory()
        logger.info(f"Session {session_id[:8]}... | Message: {message!r}")
        history = self._admit_inbound(session_id, Message(role=Role.HUMAN, content=message))

        result = self.engine.invoke(history)

        try:
            history_length = self.store.append_message(session_id, result.reply)
        except SessionNotFoundError:
            # Deleted, evicted or swept while the engine was running.
            logger.warning(f"Session {session_id[:8]}... vanished mid-request; reply not recorded.")
            history_length = 0

        content = result.reply.content
        response_text = content if isinstance(content, str) else json.dumps(content, ensure_ascii=False)
        logger.info(f"Response sent. History length: {history_length}")
        return ChatTurn(
            response=response_text,
            session_id=session_id,
            history_length=history_length,
            metadata=result.metadata,
        )
