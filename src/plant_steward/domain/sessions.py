"""Domain models for conversation sessions."""

from dataclasses import dataclass
from enum import Enum

from plant_steward.domain.content import ContentId
from plant_steward.domain.events import GeoPoint


class ConversationState(str, Enum):
    """Steps of a plant documentation conversation."""

    IDLE = "IDLE"
    WAITING_FOR_PHONE = "WAITING_FOR_PHONE"
    WAITING_FOR_PLANT_NAME = "WAITING_FOR_PLANT_NAME"
    WAITING_FOR_IMAGE = "WAITING_FOR_IMAGE"
    WAITING_FOR_LOCATION = "WAITING_FOR_LOCATION"


@dataclass
class Session:
    """Mutable per-chat conversation record."""

    chat_id: int
    state: ConversationState = ConversationState.IDLE
    user_id: ContentId | None = None
    phone_number: str | None = None
    username: str | None = None
    plant_name: str | None = None
    close_image_id: ContentId | None = None
    location_image_id: ContentId | None = None
    pending_location_image_id: ContentId | None = None
    image_analysis: str | None = None
    is_plant: bool | None = None
    confidence: str | None = None
    location: GeoPoint | None = None
    is_new_planting: bool = False

    @property
    def has_identity(self) -> bool:
        """Return true once the user has been resolved in the content store."""
        return self.user_id is not None

    @property
    def has_any_image(self) -> bool:
        """Return true when a close-up or distance shot has been accepted."""
        return self.close_image_id is not None or self.location_image_id is not None

    @property
    def has_both_images(self) -> bool:
        """Return true when both shot types have been accepted."""
        return self.close_image_id is not None and self.location_image_id is not None
