"""Pydantic models for Telegram webhook payloads."""

from pydantic import BaseModel, Field

from plant_steward.domain.events import GeoPoint, InboundEvent


class TelegramUser(BaseModel):
    """Telegram user payload."""

    id: int
    is_bot: bool | None = None
    first_name: str | None = None
    username: str | None = None


class TelegramChat(BaseModel):
    """Telegram chat payload."""

    id: int
    type: str


class TelegramPhotoSize(BaseModel):
    """Telegram photo size payload."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: int | None = None


class TelegramContact(BaseModel):
    """Shared contact card."""

    phone_number: str
    first_name: str | None = None
    user_id: int | None = None


class TelegramLocation(BaseModel):
    """Shared location point."""

    latitude: float
    longitude: float


class TelegramMessage(BaseModel):
    """Telegram message payload."""

    message_id: int
    date: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    photo: list[TelegramPhotoSize] | None = None
    contact: TelegramContact | None = None
    location: TelegramLocation | None = None

    def to_event(self) -> InboundEvent:
        """Convert to a transport-neutral conversation event."""
        photo = _select_largest_photo(self.photo) if self.photo else None
        return InboundEvent(
            chat_id=self.chat.id,
            text=self.text,
            photo_file_id=photo.file_id if photo else None,
            location=(
                GeoPoint(
                    latitude=self.location.latitude,
                    longitude=self.location.longitude,
                )
                if self.location
                else None
            ),
            contact_phone=self.contact.phone_number if self.contact else None,
        )


class TelegramUpdate(BaseModel):
    """Telegram update payload."""

    update_id: int
    message: TelegramMessage | None = None


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))
