"""Conversation state machine for documenting a plant."""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from plant_steward.adapters.strapi_client import ContentStoreClient
from plant_steward.adapters.telegram_file_client import TelegramFileClient
from plant_steward.clock import Clock, utc_now
from plant_steward.domain.classification import (
    ClassificationDegraded,
    ClassificationResult,
)
from plant_steward.domain.content import ContentId, ContentStoreError
from plant_steward.domain.events import InboundEvent
from plant_steward.domain.sessions import ConversationState, Session
from plant_steward.services.classifier import ImageClassifier
from plant_steward.services.sessions import SessionPrompt, SessionStore
from plant_steward.services.tracking import TrackingService
from plant_steward.services.users import UserService, apply_identity
from plant_steward.telegram_commands import (
    KEEP_COMMAND,
    REPLACE_COMMAND,
    START_COMMAND,
    BotCommand,
    command_menu_text,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again or use /cancel to restart."
DOWNLOAD_ERROR_MESSAGE = "Couldn't download that photo. Please send it again."
ACCOUNT_NOT_FOUND_MESSAGE = (
    "Sorry, I couldn't find your account. Please contact support."
)

CANCEL = BotCommand.CANCEL.value.slash
NEW_PLANTING = BotCommand.NEW_PLANTING.value.slash
ADD_PLANT = BotCommand.ADD_PLANT.value.slash
MAP = BotCommand.MAP.value.slash

REMOVE_KEYBOARD: dict = {"remove_keyboard": True}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]")


class ShotType(Enum):
    """How an accepted photo is filed on the session."""

    CLOSE_UP = "close_up"
    DISTANCE = "distance"


@dataclass
class ConversationService:
    """Drives one chat through identity, name, photos, and location."""

    session_store: SessionStore
    user_service: UserService
    tracking_service: TrackingService
    classifier: ImageClassifier
    content_client: ContentStoreClient
    file_client: TelegramFileClient
    map_url: str
    upload_folder: str = "plants"
    debug_errors: bool = False
    clock: Clock = utc_now

    async def handle(self, event: InboundEvent) -> list[SessionPrompt]:
        """Apply one inbound event and return the replies to send."""
        session = self.session_store.get_or_create(event.chat_id)
        try:
            return await self._dispatch(session, event)
        except ContentStoreError as exc:
            logger.exception(
                "Content store call failed",
                extra={"chat_id": event.chat_id, "state": session.state.value},
            )
            return [SessionPrompt(text=str(exc))]
        except Exception as exc:
            logger.exception(
                "Failed to handle message",
                extra={"chat_id": event.chat_id, "state": session.state.value},
            )
            return [SessionPrompt(text=self._format_error(exc))]

    async def _dispatch(  # noqa: PLR0911
        self, session: Session, event: InboundEvent
    ) -> list[SessionPrompt]:
        command = event.command
        if command == CANCEL:
            return self._cancel(event.chat_id)

        if session.pending_location_image_id is not None:
            return self._resolve_pending(session, command)

        if command in {NEW_PLANTING, ADD_PLANT}:
            return await self._start_flow(session, command == NEW_PLANTING)
        if command == MAP:
            return [self._map_prompt()]
        if command == START_COMMAND:
            return [_menu_prompt()]

        if event.photo_file_id:
            return await self._handle_photo(session, event.photo_file_id)

        if session.state is ConversationState.IDLE:
            return await self._handle_idle(session, event)
        if session.state is ConversationState.WAITING_FOR_PHONE:
            if event.contact_phone:
                return await self._link_phone(session, event.contact_phone)
            return [_phone_prompt()]
        if session.state is ConversationState.WAITING_FOR_PLANT_NAME:
            return self._handle_plant_name(session, event)
        if session.state is ConversationState.WAITING_FOR_IMAGE:
            if session.has_both_images:
                return [self._ask_location(session)]
            return [SessionPrompt(text="Please send a photo of the plant.")]
        return await self._handle_location(session, event)

    def _cancel(self, chat_id: int) -> list[SessionPrompt]:
        self.session_store.reset(chat_id)
        return [
            SessionPrompt(
                text=f"Session cancelled.\n\n{command_menu_text()}",
                reply_markup=REMOVE_KEYBOARD,
            )
        ]

    def _resolve_pending(
        self, session: Session, command: str | None
    ) -> list[SessionPrompt]:
        if command == REPLACE_COMMAND:
            session.location_image_id = session.pending_location_image_id
            text = "Location image replaced successfully."
        elif command == KEEP_COMMAND:
            text = "Keeping the existing location image."
        else:
            return []
        session.pending_location_image_id = None
        if session.close_image_id is None:
            text += " Send us a close-up image next!"
        return [SessionPrompt(text=text), *self._follow_up(session)]

    async def _start_flow(
        self, session: Session, is_new_planting: bool
    ) -> list[SessionPrompt]:
        if session.state not in {
            ConversationState.IDLE,
            ConversationState.WAITING_FOR_PHONE,
        }:
            session = self._restart_attempt(session)
        session.is_new_planting = is_new_planting
        if await self.user_service.ensure_identity(session):
            return [self._ask_plant_name(session)]
        session.state = ConversationState.WAITING_FOR_PHONE
        return [_phone_prompt()]

    def _restart_attempt(self, session: Session) -> Session:
        """Drop a half-finished attempt but keep the resolved identity."""
        fresh = self.session_store.reset(session.chat_id)
        fresh.user_id = session.user_id
        fresh.username = session.username
        fresh.phone_number = session.phone_number
        return fresh

    async def _handle_idle(
        self, session: Session, event: InboundEvent
    ) -> list[SessionPrompt]:
        if event.contact_phone:
            return await self._link_phone(session, event.contact_phone)
        if event.command is not None:
            return [_menu_prompt()]
        if await self.user_service.ensure_identity(session):
            return [_menu_prompt()]
        return [_phone_prompt()]

    async def _link_phone(
        self, session: Session, phone_number: str
    ) -> list[SessionPrompt]:
        user = await self.user_service.link_by_phone(phone_number, session.chat_id)
        if user is None:
            session.state = ConversationState.IDLE
            return [
                SessionPrompt(
                    text=ACCOUNT_NOT_FOUND_MESSAGE, reply_markup=REMOVE_KEYBOARD
                )
            ]
        apply_identity(session, user)
        return [self._ask_plant_name(session)]

    def _handle_plant_name(
        self, session: Session, event: InboundEvent
    ) -> list[SessionPrompt]:
        name = (event.text or "").strip()
        if not name or event.command is not None:
            return [self._ask_plant_name(session)]
        session.plant_name = name
        if session.has_any_image:
            return [self._ask_location(session)]
        session.state = ConversationState.WAITING_FOR_IMAGE
        return [
            SessionPrompt(
                text=(
                    "Great! Now please send me a close-up and a distance shot "
                    "of the plant."
                )
            )
        ]

    async def _handle_location(
        self, session: Session, event: InboundEvent
    ) -> list[SessionPrompt]:
        if event.location is None:
            return [self._ask_location(session)]
        await self.tracking_service.save(session, event.location)
        session.location = event.location
        summary = self._summary_prompt(session)
        self.session_store.reset(session.chat_id)
        logger.info(
            "Plant entry saved",
            extra={"chat_id": session.chat_id, "user_id": session.user_id},
        )
        return [summary]

    async def _handle_photo(
        self, session: Session, file_id: str
    ) -> list[SessionPrompt]:
        try:
            image_bytes = await self.file_client.download_file_bytes(file_id)
        except Exception:
            logger.exception(
                "Failed to download Telegram photo", extra={"file_id": file_id}
            )
            return [SessionPrompt(text=DOWNLOAD_ERROR_MESSAGE)]

        uploaded = await self.content_client.upload(
            image_bytes, self._filename(session), self.upload_folder
        )
        result = await self.classifier.classify(image_bytes)
        prompt = self._accept_image(session, uploaded.file_id, result)
        return [prompt, *self._follow_up(session)]

    def _accept_image(
        self, session: Session, file_id: ContentId, result: ClassificationResult
    ) -> SessionPrompt:
        session.is_plant = result.is_plant
        session.confidence = result.confidence
        shot = _shot_type(session, result)
        accepted_close_up = result.is_plant and shot is ShotType.CLOSE_UP
        if accepted_close_up or session.image_analysis is None:
            session.image_analysis = result.summary

        if not result.is_plant:
            return SessionPrompt(
                text=(
                    f"That doesn't look like a plant: {result.summary}\n"
                    "Please try again with a photo of the plant."
                )
            )
        if shot is ShotType.CLOSE_UP:
            session.close_image_id = file_id
            text = "Close-up image received and processed."
            if session.location_image_id is None:
                text += (
                    " Send us a distance shot next so we can understand "
                    "the location of the plant better!"
                )
            return SessionPrompt(text=text)
        if shot is ShotType.DISTANCE:
            if session.location_image_id is not None:
                session.pending_location_image_id = file_id
                return SessionPrompt(
                    text=(
                        "You already have a distance shot uploaded. Would you like "
                        "to replace it with this new image? Reply with /replace "
                        "or /keep."
                    )
                )
            session.location_image_id = file_id
            text = "Location image received and processed."
            if session.close_image_id is None:
                text += " Send us a close-up image next!"
            return SessionPrompt(text=text)
        return SessionPrompt(
            text=(
                "The image does not qualify as a close-up or distance shot. "
                "Please try again."
            )
        )

    def _follow_up(self, session: Session) -> list[SessionPrompt]:
        """Nudge the user toward the current step after an image action."""
        if session.pending_location_image_id is not None:
            return []
        if session.state is ConversationState.IDLE:
            return [_menu_prompt()]
        if session.state is ConversationState.WAITING_FOR_PHONE:
            return [_phone_prompt()]
        if session.state is ConversationState.WAITING_FOR_PLANT_NAME:
            return [self._ask_plant_name(session)]
        if session.state is ConversationState.WAITING_FOR_IMAGE:
            return [self._ask_location(session)] if session.has_both_images else []
        return [self._ask_location(session)]

    def _ask_plant_name(self, session: Session) -> SessionPrompt:
        session.state = ConversationState.WAITING_FOR_PLANT_NAME
        action = "planting" if session.is_new_planting else "documenting"
        greeting = f"Hi {session.username}!" if session.username else "Hi!"
        return SessionPrompt(
            text=(
                f"{greeting} Let's get started. "
                f"What is the name of the plant you're {action}?\n\n"
                "You can use /cancel at any time to start over."
            ),
            reply_markup=REMOVE_KEYBOARD,
        )

    def _ask_location(self, session: Session) -> SessionPrompt:
        session.state = ConversationState.WAITING_FOR_LOCATION
        return SessionPrompt(
            text="Please share the location where this plant is growing.",
            reply_markup=_reply_keyboard("Share Location", request="request_location"),
        )

    def _map_prompt(self) -> SessionPrompt:
        return SessionPrompt(
            text="View your plants on the map:",
            reply_markup={
                "inline_keyboard": [
                    [{"text": "Open Interactive Map", "url": self.map_url}]
                ]
            },
        )

    def _summary_prompt(self, session: Session) -> SessionPrompt:
        location = session.location
        lines = [
            "Entry Complete!",
            "",
            f"Plant: {session.plant_name}",
        ]
        if location is not None:
            lines.append(f"Location: {location.latitude}, {location.longitude}")
        lines.append("")
        if session.image_analysis:
            lines.extend(["Analysis:", session.image_analysis, ""])
        if session.is_new_planting:
            lines.extend([f"Planting Date: {self.clock().date().isoformat()}", ""])
        lines.extend(
            [
                "What would you like to do next?",
                f"{NEW_PLANTING} - {BotCommand.NEW_PLANTING.value.description}",
                f"{ADD_PLANT} - {BotCommand.ADD_PLANT.value.description}",
            ]
        )
        return SessionPrompt(text="\n".join(lines), reply_markup=REMOVE_KEYBOARD)

    def _filename(self, session: Session) -> str:
        """Build an upload filename from the plant name and a timestamp."""
        base = (session.plant_name or "unknown plant").lower()
        sanitized = _UNSAFE_FILENAME_CHARS.sub("_", base)[:30]
        timestamp = int(self.clock().timestamp() * 1000)
        return f"{sanitized}_{timestamp}.jpg"

    def _format_error(self, exc: Exception) -> str:
        """Return the generic error text, with debug info when enabled."""
        if self.debug_errors:
            detail = f"{type(exc).__name__}: {exc}".strip()
            if detail:
                return f"{GENERIC_ERROR_MESSAGE} (debug: {detail})"
        return GENERIC_ERROR_MESSAGE


def _shot_type(session: Session, result: ClassificationResult) -> ShotType | None:
    """Decide how a photo is filed; degraded verdicts never reject."""
    if isinstance(result, ClassificationDegraded):
        if session.close_image_id is None:
            return ShotType.CLOSE_UP
        return ShotType.DISTANCE
    if result.close_up:
        return ShotType.CLOSE_UP
    if result.distance_shot:
        return ShotType.DISTANCE
    return None


def _menu_prompt() -> SessionPrompt:
    return SessionPrompt(text=command_menu_text())


def _phone_prompt() -> SessionPrompt:
    return SessionPrompt(
        text=(
            "Please share your phone number to get started. "
            "Minimizing the keyboard will give you a share button."
        ),
        reply_markup=_reply_keyboard("Share Phone Number", request="request_contact"),
    )


def _reply_keyboard(label: str, request: str) -> dict:
    """Build a one-time Telegram reply keyboard with a single request button."""
    return {
        "keyboard": [[{"text": label, request: True}]],
        "resize_keyboard": True,
        "one_time_keyboard": True,
    }
