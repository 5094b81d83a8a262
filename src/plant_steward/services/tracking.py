"""Persistence of completed plant documentation records."""

import logging
from dataclasses import dataclass

from plant_steward.adapters.strapi_client import ContentStoreClient
from plant_steward.clock import Clock, utc_now
from plant_steward.domain.content import ContentStoreError, ContentStoreUnavailable
from plant_steward.domain.events import GeoPoint
from plant_steward.domain.sessions import Session

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save plant data to database"


class TrackingSaveError(ContentStoreError):
    """The tracking record could not be stored."""


@dataclass
class TrackingService:
    """Builds and submits location-tracking records."""

    client: ContentStoreClient
    clock: Clock = utc_now

    async def save(self, session: Session, location: GeoPoint) -> dict[str, object]:
        """Persist the session's plant at the given location."""
        payload = self.build_payload(session, location)
        try:
            return await self.client.create_tracking_record(payload)
        except ContentStoreUnavailable:
            raise
        except Exception as exc:
            logger.exception(
                "Failed to save tracking record",
                extra={"chat_id": session.chat_id, "user_id": session.user_id},
            )
            raise TrackingSaveError(SAVE_FAILED_MESSAGE) from exc

    def build_payload(self, session: Session, location: GeoPoint) -> dict[str, object]:
        """Return the record body for the content store."""
        if not session.plant_name:
            raise ValueError("Cannot save a plant without a name")
        if session.user_id is None:
            raise ValueError("No user ID found in session")
        now = self.clock().isoformat()
        data: dict[str, object] = {
            "label": session.plant_name,
            "close_up_image": session.close_image_id,
            "location_image": session.location_image_id,
            "analysis": session.image_analysis,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "last_verified": now,
            "phone_number": session.phone_number,
            "user": session.user_id,
            "is_plant": session.is_plant,
            "confidence": session.confidence,
        }
        if session.is_new_planting:
            data["planted_date"] = now
        return {"data": data}
