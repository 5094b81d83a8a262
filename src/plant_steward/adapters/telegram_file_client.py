"""Telegram photo download client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from plant_steward.adapters.telegram_client import TELEGRAM_API_BASE, TelegramApiError


class TelegramFileClient(Protocol):
    """Interface for downloading Telegram files."""

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Download a Telegram file and return its bytes."""


@dataclass
class HttpxTelegramFileClient(TelegramFileClient):
    """Telegram file client using httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    api_base: str = TELEGRAM_API_BASE

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramFileClient":
        """Create a Telegram file client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Resolve the file path via getFile, then fetch the content."""
        file_path = await self._resolve_file_path(file_id)
        download_url = f"{self.api_base}/file/bot{self.bot_token}/{file_path}"
        response = await self.http_client.get(download_url, timeout=20)
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _resolve_file_path(self, file_id: str) -> str:
        url = f"{self.api_base}/bot{self.bot_token}/getFile"
        response = await self.http_client.get(
            url, params={"file_id": file_id}, timeout=10
        )
        response.raise_for_status()
        payload = response.json()
        result = payload.get("result") if payload.get("ok") else None
        if not isinstance(result, dict) or not result.get("file_path"):
            raise TelegramApiError(f"getFile failed for {file_id}")
        return str(result["file_path"])
