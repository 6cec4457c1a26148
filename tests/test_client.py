import json

import httpx
import pytest

from kitchen_voice.services.voice.client import VoiceCommandClient


class RecordingSpeech:
    def __init__(self):
        self.spoken = []

    async def speak_async(self, text):
        self.spoken.append(text)
        return True


def _client(handler, speech=None) -> VoiceCommandClient:
    return VoiceCommandClient(
        "http://kitchen.test/",
        "dev-admin-key",
        speech=speech,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_handle_command_returns_and_speaks_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "response": "You have 3 pending orders."})

    speech = RecordingSpeech()
    client = _client(handler, speech)
    try:
        reply = await client.handle_command("how many pending orders")
    finally:
        await client.aclose()

    assert reply == "You have 3 pending orders."
    assert speech.spoken == [reply]
    assert seen == {
        "path": "/api/ai/process-command",
        "auth": "Bearer dev-admin-key",
        "body": {"command": "how many pending orders"},
    }


@pytest.mark.asyncio
async def test_unauthorized_reply():
    client = _client(lambda r: httpx.Response(401, json={"success": False, "error": "Unauthorized"}))
    try:
        reply = await client.handle_command("help")
    finally:
        await client.aclose()
    assert reply == "I'm not authorized to run commands. Check the API key."


@pytest.mark.asyncio
async def test_service_error_text_is_relayed():
    client = _client(lambda r: httpx.Response(400, json={"success": False, "error": "Command is required"}))
    try:
        assert await client.handle_command(" ") == "Command is required"
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_unreachable_service():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    try:
        reply = await client.handle_command("help")
    finally:
        await client.aclose()
    assert reply == "I couldn't reach the command service. Please try again."
