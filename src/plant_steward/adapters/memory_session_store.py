"""Process-local session store."""

import logging
from dataclasses import dataclass, field

from plant_steward.domain.sessions import Session
from plant_steward.services.sessions import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class InMemorySessionStore(SessionStore):
    """Dict-backed session store; contents are lost on restart."""

    sessions: dict[int, Session] = field(default_factory=dict)

    def get(self, chat_id: int) -> Session | None:
        return self.sessions.get(chat_id)

    def get_or_create(self, chat_id: int) -> Session:
        session = self.sessions.get(chat_id)
        if session is not None:
            return session
        logger.info("Creating new session", extra={"chat_id": chat_id})
        session = Session(chat_id=chat_id)
        self.sessions[chat_id] = session
        return session

    def reset(self, chat_id: int) -> Session:
        session = Session(chat_id=chat_id)
        self.sessions[chat_id] = session
        return session
