"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from plant_steward.adapters.memory_session_store import InMemorySessionStore
from plant_steward.adapters.strapi_client import ContentStoreClient, normalize_phone
from plant_steward.adapters.telegram_client import TelegramClient
from plant_steward.config import Settings
from plant_steward.containers import AppContainer
from plant_steward.domain.content import (
    ContentId,
    ContentStoreUnavailable,
    ContentUser,
    UploadedFile,
)
from plant_steward.services.classifier import ClassifierClient, ImageClassifier
from plant_steward.services.conversation import ConversationService
from plant_steward.services.tracking import TrackingService
from plant_steward.services.users import UserService

FIXED_NOW = datetime(2025, 1, 7, 19, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


def verdict_json(
    *,
    is_plant: bool = True,
    close_up: bool = False,
    distance_shot: bool = False,
    description: str = "A leafy green plant.",
) -> str:
    """Build a classifier answer the way the model formats it."""
    payload = {
        "isPlant": is_plant,
        "description": description,
        "plantDetails": {
            "close_up": close_up,
            "distance_shot": distance_shot,
            "type": "Fern" if close_up else None,
            "type_confidence": "high" if close_up else None,
            "health": "Healthy" if close_up else None,
            "notable_features": "Fronds" if close_up else None,
        },
    }
    return f"```json\n{json.dumps(payload)}\n```"


CLOSE_UP = verdict_json(close_up=True)
DISTANCE = verdict_json(distance_shot=True)
NOT_A_PLANT = verdict_json(is_plant=False, description="A red bicycle.")


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    markups: list[dict | None] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        self.messages.append((chat_id, text))
        self.markups.append(reply_markup)

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button


@dataclass
class FakeTelegramFileClient:
    """Fake Telegram file client that returns static bytes."""

    content: bytes = b"\xff\xd8\xfffake-jpeg"
    fail: bool = False
    requested: list[str] = field(default_factory=list)

    async def download_file_bytes(self, file_id: str) -> bytes:
        self.requested.append(file_id)
        if self.fail:
            raise RuntimeError("telegram unavailable")
        return self.content


@dataclass
class FakeClassifierClient(ClassifierClient):
    """Fake classifier returning queued raw answers."""

    answers: list[str] = field(default_factory=list)
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.answers:
            return CLOSE_UP
        return self.answers.pop(0)


@dataclass
class FakeContentStoreClient(ContentStoreClient):
    """In-memory content store."""

    users: list[ContentUser] = field(default_factory=list)
    chat_links: dict[int, ContentId] = field(default_factory=dict)
    upload_ids: list[ContentId] = field(default_factory=list)
    uploads: list[tuple[str, str]] = field(default_factory=list)
    records: list[dict[str, object]] = field(default_factory=list)
    unavailable: bool = False
    fail_records: bool = False
    fail_link: bool = False

    async def upload(self, content: bytes, filename: str, folder: str) -> UploadedFile:
        self._check()
        self.uploads.append((filename, folder))
        file_id = (
            self.upload_ids.pop(0) if self.upload_ids else f"img-{len(self.uploads)}"
        )
        return UploadedFile(file_id=file_id, file_url=f"/uploads/{filename}")

    async def find_user_by_chat_id(self, chat_id: int) -> ContentUser | None:
        self._check()
        user_id = self.chat_links.get(chat_id)
        return next((user for user in self.users if user.id == user_id), None)

    async def find_user_by_phone(self, phone_number: str) -> ContentUser | None:
        self._check()
        phone = normalize_phone(phone_number)
        return next((user for user in self.users if user.phone_number == phone), None)

    async def update_user_chat_id(self, user_id: ContentId, chat_id: int) -> None:
        self._check()
        if self.fail_link:
            raise ContentStoreUnavailable("link failed")
        self.chat_links[chat_id] = user_id

    async def create_tracking_record(
        self, payload: dict[str, object]
    ) -> dict[str, object]:
        self._check()
        if self.fail_records:
            raise ValueError("unexpected response")
        self.records.append(payload)
        return {"data": {"id": len(self.records), **payload}}

    def _check(self) -> None:
        if self.unavailable:
            raise ContentStoreUnavailable("connect ECONNREFUSED")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        strapi_api_url="https://cms.example.com",
        strapi_api_token="strapi-token",
        openai_api_key="openai-key",
        environment="test",
    )


@pytest.fixture
def known_user() -> ContentUser:
    return ContentUser(id=7, username="ana", phone_number="+15550001111")


@pytest.fixture
def content_client(known_user: ContentUser) -> FakeContentStoreClient:
    return FakeContentStoreClient(users=[known_user])


@pytest.fixture
def classifier_client() -> FakeClassifierClient:
    return FakeClassifierClient()


@pytest.fixture
def file_client() -> FakeTelegramFileClient:
    return FakeTelegramFileClient()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def conversation(
    session_store: InMemorySessionStore,
    content_client: FakeContentStoreClient,
    classifier_client: FakeClassifierClient,
    file_client: FakeTelegramFileClient,
) -> ConversationService:
    return ConversationService(
        session_store=session_store,
        user_service=UserService(content_client),
        tracking_service=TrackingService(content_client, clock=fixed_clock),
        classifier=ImageClassifier(
            client=classifier_client,
            model="gpt-5.2",
            reasoning_effort="low",
            store=False,
        ),
        content_client=content_client,
        file_client=file_client,
        map_url="https://maps.example.com/plants",
        clock=fixed_clock,
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def container(
    settings: Settings,
    telegram_client: FakeTelegramClient,
    file_client: FakeTelegramFileClient,
    content_client: FakeContentStoreClient,
    session_store: InMemorySessionStore,
    conversation: ConversationService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=file_client,
        content_client=content_client,
        session_store=session_store,
        user_service=conversation.user_service,
        image_classifier=conversation.classifier,
        tracking_service=conversation.tracking_service,
        conversation_service=conversation,
        close_resources=close_resources,
    )
