"""Plant photo classification using a multimodal LLM."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from plant_steward.domain.classification import (
    ClassificationDegraded,
    ClassificationResult,
    ClassificationSuccess,
    ClassifierBlockedError,
    DegradedReason,
    PlantVerdict,
)

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = """Analyze this image and respond in the following JSON format:
{
  "isPlant": boolean,
  "description": "2-3 sentences describing what you see",
  "plantDetails": {
    "distance_shot": boolean, true if the image is a distance shot where we can see the plant and its surroundings,
    "close_up": boolean, true if the image is a close-up where we can see details of the plant,
    "type": "string describing the type of plant (only if close_up is true)",
    "type_confidence": "high" | "medium" | "low" | "unknown" (only if close_up is true),
    "health": "description of plant health (only if close_up is true)",
    "notable_features": "key visual features (only if close_up is true)"
  }
}

If the image is not of a plant, set isPlant to false and only fill the description field.
Keep all descriptions concise and focused on visual elements."""

BLOCKED_DESCRIPTION = "AI analysis currently unavailable - image saved"
FAILED_DESCRIPTION = "Image analysis failed - please try again later"

_CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")


class ClassifierClient(Protocol):
    """Interface for a single-shot multimodal completion."""

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> str:
        """Return the model's raw text answer."""


@dataclass
class ImageClassifier:
    """Classify photos as plant close-ups or distance shots."""

    client: ClassifierClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        """Return a verdict for the image; never raises."""
        try:
            raw = await self.client.complete(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_url=_to_data_url(image_bytes),
                prompt=CLASSIFY_PROMPT,
            )
        except ClassifierBlockedError:
            logger.warning("Classifier access is blocked, continuing without analysis")
            return ClassificationDegraded(
                reason=DegradedReason.BLOCKED,
                description=BLOCKED_DESCRIPTION,
                confidence="unverified",
            )
        except Exception:
            logger.exception("Classifier request failed")
            return _failed()

        try:
            verdict = parse_verdict(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.exception("Classifier returned an unexpected payload")
            return _failed()
        return ClassificationSuccess(verdict=verdict)


def parse_verdict(raw: str) -> PlantVerdict:
    """Strip markdown fences from the model output and validate it."""
    cleaned = _CODE_FENCE.sub("", raw).strip()
    return PlantVerdict.model_validate(json.loads(cleaned))


def _failed() -> ClassificationDegraded:
    return ClassificationDegraded(
        reason=DegradedReason.FAILED,
        description=FAILED_DESCRIPTION,
        confidence="unknown",
    )


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
