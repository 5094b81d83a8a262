"""Models for plant photo classification results."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PlantDetails(BaseModel):
    """Shot type and plant details reported by the model."""

    model_config = ConfigDict(populate_by_name=True)

    distance_shot: bool = False
    close_up: bool = False
    type: str | None = None
    type_confidence: str | None = None
    health: str | None = None
    notable_features: str | None = None


class PlantVerdict(BaseModel):
    """Structured judgment of a single photo."""

    model_config = ConfigDict(populate_by_name=True)

    is_plant: bool = Field(alias="isPlant")
    description: str
    plant_details: PlantDetails = Field(
        default_factory=PlantDetails, alias="plantDetails"
    )


class ClassifierBlockedError(Exception):
    """The classification service refused the API key."""


class DegradedReason(str, Enum):
    """Why a real verdict could not be produced."""

    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass(frozen=True)
class ClassificationSuccess:
    """The model answered with a valid verdict."""

    verdict: PlantVerdict

    @property
    def is_plant(self) -> bool:
        return self.verdict.is_plant

    @property
    def confidence(self) -> str | None:
        return self.verdict.plant_details.type_confidence

    @property
    def close_up(self) -> bool:
        return self.verdict.plant_details.close_up

    @property
    def distance_shot(self) -> bool:
        return self.verdict.plant_details.distance_shot

    @property
    def summary(self) -> str:
        """Human-readable analysis text stored on the session."""
        if not self.verdict.is_plant:
            return self.verdict.description
        details = self.verdict.plant_details
        return (
            f"{self.verdict.description}\n\n"
            f"Type: {details.type or 'unknown'}\n"
            f"Health: {details.health or 'unknown'}\n"
            f"Notable Features: {details.notable_features or 'none noted'}\n"
            f"Close up: {_yes_no(details.close_up)}\n"
            f"Distance shot: {_yes_no(details.distance_shot)}"
        )


@dataclass(frozen=True)
class ClassificationDegraded:
    """Safe default used when the model is unavailable or unparseable."""

    reason: DegradedReason
    description: str
    confidence: str

    is_plant = True
    close_up = False
    distance_shot = False

    @property
    def summary(self) -> str:
        return self.description


ClassificationResult = ClassificationSuccess | ClassificationDegraded


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"
