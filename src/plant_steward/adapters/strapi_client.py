"""Strapi content store REST adapter."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from plant_steward.domain.content import (
    ContentId,
    ContentStoreError,
    ContentStoreUnavailable,
    ContentUser,
    UploadedFile,
)

logger = logging.getLogger(__name__)

_GATEWAY_STATUSES = {502, 503, 504}


class ContentStoreClient(Protocol):
    """Interface for the remote content store."""

    async def upload(self, content: bytes, filename: str, folder: str) -> UploadedFile:
        """Upload a file to the media library."""

    async def find_user_by_chat_id(self, chat_id: int) -> ContentUser | None:
        """Return the user linked to a chat, if any."""

    async def find_user_by_phone(self, phone_number: str) -> ContentUser | None:
        """Return the user registered with a phone number, if any."""

    async def update_user_chat_id(self, user_id: ContentId, chat_id: int) -> None:
        """Link a chat to a user."""

    async def create_tracking_record(
        self, payload: dict[str, object]
    ) -> dict[str, object]:
        """Create a location-tracking entry and return the stored record."""


def normalize_phone(phone_number: str) -> str:
    """Return the phone number with a leading plus sign."""
    cleaned = phone_number.strip()
    return cleaned if cleaned.startswith("+") else f"+{cleaned}"


@dataclass
class HttpxStrapiClient(ContentStoreClient):
    """Content store client implemented with httpx."""

    base_url: str
    api_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, api_token: str) -> "HttpxStrapiClient":
        """Create a Strapi client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_token=api_token,
            http_client=httpx.AsyncClient(),
        )

    async def upload(self, content: bytes, filename: str, folder: str) -> UploadedFile:
        """Upload image bytes via the upload plugin."""
        logger.info("Uploading file %s to folder %s", filename, folder)
        response = await self._request(
            "POST",
            "/api/upload",
            action="upload image",
            files={"files": (filename, content, "image/jpeg")},
            data={"folder": folder},
            timeout=30,
        )
        payload = _json_or_error(response, "upload image")
        if not isinstance(payload, list):
            raise ContentStoreError(
                "Failed to upload image: Invalid upload response from Strapi"
            )
        uploaded = payload[0] if payload else None
        if not isinstance(uploaded, dict) or not uploaded.get("id"):
            raise ContentStoreError(
                "Failed to upload image: No file ID received from Strapi"
            )
        return UploadedFile(file_id=uploaded["id"], file_url=uploaded.get("url"))

    async def find_user_by_chat_id(self, chat_id: int) -> ContentUser | None:
        """Look up a user by linked Telegram chat id."""
        return await self._find_user("chatId", str(chat_id))

    async def find_user_by_phone(self, phone_number: str) -> ContentUser | None:
        """Look up a user by phone number."""
        return await self._find_user("phoneNumber", normalize_phone(phone_number))

    async def update_user_chat_id(self, user_id: ContentId, chat_id: int) -> None:
        """Store the Telegram chat id on the user record."""
        await self._request(
            "PUT",
            f"/api/users/{user_id}",
            action="update user",
            json={"chatId": str(chat_id)},
        )

    async def create_tracking_record(
        self, payload: dict[str, object]
    ) -> dict[str, object]:
        """Create a location-tracking entry."""
        response = await self._request(
            "POST",
            "/api/location-trackings",
            action="save plant data",
            json=payload,
        )
        body = _json_or_error(response, "save plant data")
        if not isinstance(body, dict):
            raise ContentStoreError("Failed to save plant data: unexpected response")
        return body

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _find_user(self, field_name: str, value: str) -> ContentUser | None:
        response = await self._request(
            "GET",
            "/api/users",
            action="find user",
            params={f"filters[{field_name}][$eq]": value},
        )
        rows = _json_or_error(response, "find user")
        if not isinstance(rows, list) or not rows:
            return None
        row = rows[0]
        if not isinstance(row, dict) or row.get("id") is None:
            return None
        return ContentUser(
            id=row["id"],
            username=row.get("username"),
            phone_number=row.get("phoneNumber"),
        )

    async def _request(
        self, method: str, path: str, *, action: str, timeout: float = 15, **kwargs
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.api_token}"}
        try:
            response = await self.http_client.request(
                method, url, headers=headers, timeout=timeout, **kwargs
            )
        except httpx.HTTPError as exc:
            if _is_connection_error(exc):
                logger.warning(
                    "Content store unreachable", extra={"action": action, "url": url}
                )
                raise ContentStoreUnavailable(str(exc)) from exc
            raise ContentStoreError(f"Failed to {action}: {exc}") from exc
        if response.status_code in _GATEWAY_STATUSES:
            raise ContentStoreUnavailable(f"HTTP {response.status_code} from {url}")
        if response.is_error:
            raise ContentStoreError(f"Failed to {action}: {_error_message(response)}")
        return response


def _is_connection_error(exc: httpx.HTTPError) -> bool:
    """Return true for refused, reset, timed-out, or generic connect failures."""
    if isinstance(exc, httpx.TimeoutException | httpx.NetworkError):
        return True
    return "connect" in str(exc).lower()


def _json_or_error(response: httpx.Response, action: str) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise ContentStoreError(f"Failed to {action}: response is not JSON") from exc


def _error_message(response: httpx.Response) -> str:
    """Prefer the message Strapi puts in its error envelope."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return f"HTTP {response.status_code}"
