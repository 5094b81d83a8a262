"""Session storage interface and outbound prompt type."""

from dataclasses import dataclass
from typing import Protocol

from plant_steward.domain.sessions import Session


class SessionStore(Protocol):
    """Keyed storage for conversation sessions."""

    def get(self, chat_id: int) -> Session | None:
        """Return the session for a chat, if present."""

    def get_or_create(self, chat_id: int) -> Session:
        """Return the existing session or create an idle one."""

    def reset(self, chat_id: int) -> Session:
        """Replace the chat's session with a fresh idle one and return it."""


@dataclass(frozen=True)
class SessionPrompt:
    """Represents one user-facing reply."""

    text: str
    reply_markup: dict | None = None
