"""OpenAI Responses API client for photo classification."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from plant_steward.domain.classification import ClassifierBlockedError
from plant_steward.services.classifier import ClassifierClient

_BLOCKED_MARKER = "API_KEY_SERVICE_BLOCKED"


@dataclass
class OpenAIClassifierClient(ClassifierClient):
    """Classifier client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIClassifierClient":
        """Create an OpenAI classifier client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> str:
        """Send the prompt and image, return the free-text answer."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.PermissionDeniedError as exc:
            raise ClassifierBlockedError(str(exc)) from exc
        except openai.APIError as exc:
            if _BLOCKED_MARKER in str(exc):
                raise ClassifierBlockedError(str(exc)) from exc
            raise
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text
