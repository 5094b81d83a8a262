"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import openai
import pytest

from plant_steward.adapters.openai_classifier_client import OpenAIClassifierClient
from plant_steward.adapters.strapi_client import HttpxStrapiClient
from plant_steward.adapters.telegram_client import HttpxTelegramClient, TelegramApiError
from plant_steward.adapters.telegram_file_client import HttpxTelegramFileClient
from plant_steward.domain.classification import ClassifierBlockedError
from plant_steward.domain.content import (
    MAINTENANCE_MESSAGE,
    ContentStoreError,
    ContentStoreUnavailable,
    ContentUser,
    UploadedFile,
)


class _FakeResponses:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def _strapi(handler) -> HttpxStrapiClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxStrapiClient(
        base_url="https://cms.test",
        api_token="secret",
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_openai_classifier_client_returns_text() -> None:
    responses = _FakeResponses(output_text='{"isPlant": true}')
    client = OpenAIClassifierClient(client=_FakeOpenAI(responses))

    result = asyncio.run(
        client.complete(
            model="gpt-5.2",
            reasoning_effort="low",
            store=False,
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            prompt="Is this a plant?",
        )
    )

    assert result == '{"isPlant": true}'
    assert responses.last_payload is not None
    assert responses.last_payload["reasoning"] == {"effort": "low"}
    content = responses.last_payload["input"][0]["content"]
    assert content[1]["image_url"] == "data:image/jpeg;base64,ZmFrZQ=="


def test_openai_classifier_client_maps_permission_denied() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    error = openai.PermissionDeniedError(
        "key blocked",
        response=httpx.Response(403, request=request),
        body=None,
    )
    client = OpenAIClassifierClient(client=_FakeOpenAI(_FakeResponses(error=error)))

    with pytest.raises(ClassifierBlockedError):
        asyncio.run(
            client.complete(
                model="gpt-5.2",
                reasoning_effort=None,
                store=False,
                image_data_url="data:image/jpeg;base64,ZmFrZQ==",
                prompt="Is this a plant?",
            )
        )


def test_strapi_upload_sends_bearer_token_and_folder() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json=[{"id": 31, "url": "/uploads/fern.jpg"}])

    client = _strapi(handler)

    uploaded = asyncio.run(client.upload(b"jpeg", "fern_1.jpg", "plants"))

    assert uploaded == UploadedFile(file_id=31, file_url="/uploads/fern.jpg")
    assert seen["auth"] == "Bearer secret"
    assert seen["path"] == "/api/upload"
    body = seen["body"]
    assert isinstance(body, bytes)
    assert b'name="folder"' in body
    assert b"fern_1.jpg" in body


def test_strapi_upload_rejects_response_without_id() -> None:
    client = _strapi(lambda request: httpx.Response(200, json=[{"url": "/x.jpg"}]))

    with pytest.raises(ContentStoreError) as excinfo:
        asyncio.run(client.upload(b"jpeg", "x.jpg", "plants"))

    assert not isinstance(excinfo.value, ContentStoreUnavailable)
    assert "No file ID" in str(excinfo.value)


def test_strapi_upload_rejects_non_list_response() -> None:
    client = _strapi(lambda request: httpx.Response(200, json={"id": 1}))

    with pytest.raises(ContentStoreError) as excinfo:
        asyncio.run(client.upload(b"jpeg", "x.jpg", "plants"))

    assert "Invalid upload response" in str(excinfo.value)


def test_strapi_find_user_by_phone_normalizes_and_filters() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(
            200,
            json=[{"id": 7, "username": "ana", "phoneNumber": "+5551234567"}],
        )

    client = _strapi(handler)

    user = asyncio.run(client.find_user_by_phone("5551234567"))

    assert user == ContentUser(id=7, username="ana", phone_number="+5551234567")
    assert seen == {"filters[phoneNumber][$eq]": "+5551234567"}


def test_strapi_find_user_by_chat_id_returns_none_when_empty() -> None:
    client = _strapi(lambda request: httpx.Response(200, json=[]))

    assert asyncio.run(client.find_user_by_chat_id(42)) is None


def test_strapi_update_user_chat_id_puts_string_id() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json={"id": 7})

    client = _strapi(handler)

    asyncio.run(client.update_user_chat_id(7, 42))

    assert seen == {"method": "PUT", "path": "/api/users/7", "json": {"chatId": "42"}}


def test_strapi_create_tracking_record_posts_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/location-trackings"
        body = json.loads(request.content)
        return httpx.Response(200, json={"data": {"id": 5, **body["data"]}})

    client = _strapi(handler)

    record = asyncio.run(client.create_tracking_record({"data": {"label": "Fern"}}))

    assert record == {"data": {"id": 5, "label": "Fern"}}


def test_strapi_connect_error_is_maintenance() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _strapi(handler)

    with pytest.raises(ContentStoreUnavailable) as excinfo:
        asyncio.run(client.find_user_by_chat_id(42))

    assert str(excinfo.value) == MAINTENANCE_MESSAGE


def test_strapi_timeout_is_maintenance() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _strapi(handler)

    with pytest.raises(ContentStoreUnavailable):
        asyncio.run(client.create_tracking_record({"data": {}}))


def test_strapi_gateway_error_is_maintenance() -> None:
    client = _strapi(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(ContentStoreUnavailable):
        asyncio.run(client.find_user_by_phone("+1"))


def test_strapi_application_error_uses_server_message() -> None:
    client = _strapi(
        lambda request: httpx.Response(
            400, json={"error": {"status": 400, "message": "label is required"}}
        )
    )

    with pytest.raises(ContentStoreError) as excinfo:
        asyncio.run(client.create_tracking_record({"data": {}}))

    assert not isinstance(excinfo.value, ContentStoreUnavailable)
    assert str(excinfo.value) == "Failed to save plant data: label is required"


def test_telegram_client_sends_message_with_markup() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/sendMessage")
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "result": {}})

    transport = httpx.MockTransport(handler)
    client = HttpxTelegramClient(
        bot_token="token", http_client=httpx.AsyncClient(transport=transport)
    )

    asyncio.run(client.send_message(chat_id=1, text="Hi"))
    asyncio.run(
        client.send_message(chat_id=1, text="Hi", reply_markup={"remove_keyboard": True})
    )

    assert "reply_markup" not in seen[0]
    assert seen[1]["reply_markup"] == {"remove_keyboard": True}


def test_telegram_client_raises_when_not_ok() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            200, json={"ok": False, "description": "chat not found"}
        )
    )
    client = HttpxTelegramClient(
        bot_token="token", http_client=httpx.AsyncClient(transport=transport)
    )

    with pytest.raises(TelegramApiError):
        asyncio.run(client.send_message(chat_id=1, text="Hi"))


def test_telegram_client_commands_and_menu_button() -> None:
    seen_paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_paths.append(request.url.path)
        payload = json.loads(request.content.decode())
        if request.url.path.endswith("/setMyCommands"):
            assert payload["commands"][0]["command"] == "newplanting"
        if request.url.path.endswith("/setChatMenuButton"):
            assert payload["menu_button"]["type"] == "commands"
        return httpx.Response(200, json={"ok": True, "result": True})

    transport = httpx.MockTransport(handler)
    client = HttpxTelegramClient(
        bot_token="token", http_client=httpx.AsyncClient(transport=transport)
    )

    asyncio.run(
        client.set_my_commands(
            [{"command": "newplanting", "description": "Document a new planting"}]
        )
    )
    asyncio.run(client.set_chat_menu_button({"type": "commands"}))

    assert any(path.endswith("/setMyCommands") for path in seen_paths)
    assert any(path.endswith("/setChatMenuButton") for path in seen_paths)


def test_telegram_file_client_downloads_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/getFile"):
            return httpx.Response(
                200,
                json={"ok": True, "result": {"file_path": "photos/file.jpg"}},
            )
        assert request.url.path == "/file/bottoken/photos/file.jpg"
        return httpx.Response(200, content=b"image-bytes")

    transport = httpx.MockTransport(handler)
    client = HttpxTelegramFileClient(
        bot_token="token", http_client=httpx.AsyncClient(transport=transport)
    )

    data = asyncio.run(client.download_file_bytes("file-id"))

    assert data == b"image-bytes"


def test_telegram_file_client_raises_when_get_file_fails() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"ok": False})
    )
    client = HttpxTelegramFileClient(
        bot_token="token", http_client=httpx.AsyncClient(transport=transport)
    )

    with pytest.raises(TelegramApiError):
        asyncio.run(client.download_file_bytes("file-id"))
