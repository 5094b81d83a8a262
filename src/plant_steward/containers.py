"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from plant_steward.adapters.memory_session_store import InMemorySessionStore
from plant_steward.adapters.openai_classifier_client import OpenAIClassifierClient
from plant_steward.adapters.strapi_client import ContentStoreClient, HttpxStrapiClient
from plant_steward.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from plant_steward.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from plant_steward.config import Settings
from plant_steward.services.classifier import ImageClassifier
from plant_steward.services.conversation import ConversationService
from plant_steward.services.sessions import SessionStore
from plant_steward.services.tracking import TrackingService
from plant_steward.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    content_client: ContentStoreClient
    session_store: SessionStore
    user_service: UserService
    image_classifier: ImageClassifier
    tracking_service: TrackingService
    conversation_service: ConversationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    content_client = HttpxStrapiClient.create(
        base_url=resolved_settings.strapi_api_url,
        api_token=resolved_settings.strapi_api_token,
    )
    openai_client = OpenAIClassifierClient.create(resolved_settings.openai_api_key)
    image_classifier = ImageClassifier(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    session_store = InMemorySessionStore()
    user_service = UserService(content_client)
    tracking_service = TrackingService(content_client)
    conversation_service = ConversationService(
        session_store=session_store,
        user_service=user_service,
        tracking_service=tracking_service,
        classifier=image_classifier,
        content_client=content_client,
        file_client=telegram_file_client,
        map_url=resolved_settings.plant_map_url,
        upload_folder=resolved_settings.upload_folder,
        debug_errors=resolved_settings.debug_errors,
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await content_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        content_client=content_client,
        session_store=session_store,
        user_service=user_service,
        image_classifier=image_classifier,
        tracking_service=tracking_service,
        conversation_service=conversation_service,
        close_resources=close_resources,
    )
