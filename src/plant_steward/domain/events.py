"""Transport-neutral inbound conversation events."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    """A shared geolocation."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class InboundEvent:
    """Single inbound message for a conversation."""

    chat_id: int
    text: str | None = None
    photo_file_id: str | None = None
    location: GeoPoint | None = None
    contact_phone: str | None = None

    @property
    def command(self) -> str | None:
        """Return the slash command, without bot mention or arguments."""
        if not self.text:
            return None
        stripped = self.text.strip()
        if not stripped.startswith("/"):
            return None
        head = stripped.split(maxsplit=1)[0]
        return head.split("@", maxsplit=1)[0].lower()
