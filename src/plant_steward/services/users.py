"""User identity resolution against the content store."""

import logging
from dataclasses import dataclass, replace

from plant_steward.adapters.strapi_client import ContentStoreClient, normalize_phone
from plant_steward.domain.content import ContentStoreError, ContentUser
from plant_steward.domain.sessions import Session

logger = logging.getLogger(__name__)


@dataclass
class UserService:
    """Application service for linking chats to content store users."""

    client: ContentStoreClient

    async def find_by_chat(self, chat_id: int) -> ContentUser | None:
        """Return the user already linked to this chat, if any."""
        return await self.client.find_user_by_chat_id(chat_id)

    async def link_by_phone(self, phone_number: str, chat_id: int) -> ContentUser | None:
        """Find a user by phone and link the chat to them."""
        formatted = normalize_phone(phone_number)
        user = await self.client.find_user_by_phone(formatted)
        if user is None:
            logger.info("No user found for shared phone", extra={"chat_id": chat_id})
            return None
        try:
            await self.client.update_user_chat_id(user.id, chat_id)
        except ContentStoreError:
            logger.exception(
                "Failed to link chat to user",
                extra={"chat_id": chat_id, "user_id": user.id},
            )
        return replace(user, phone_number=user.phone_number or formatted)

    async def ensure_identity(self, session: Session) -> bool:
        """Fill identity fields from a chat lookup; return whether known."""
        if session.has_identity:
            return True
        user = await self.find_by_chat(session.chat_id)
        if user is None:
            return False
        apply_identity(session, user)
        return True


def apply_identity(session: Session, user: ContentUser) -> None:
    """Copy the resolved user onto the session."""
    session.user_id = user.id
    session.username = user.username
    session.phone_number = user.phone_number
