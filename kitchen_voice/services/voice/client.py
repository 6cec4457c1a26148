"""
Voice Command Client

Submits captured commands to the command service over HTTP and speaks the
replies. Used by scripts/voice_client.py.

Version: 4.0.0
"""

import logging
from typing import Any, Optional

import httpx

from kitchen_voice.services.voice.speech import SpeechOutput

logger = logging.getLogger(__name__)


class VoiceCommandClient:
    """
    HTTP client for `POST /api/ai/process-command`.

    Args:
        base_url: Service root, e.g. "http://localhost:8001"
        api_key: Admin API key sent as a bearer token
        speech: Optional speech output for replies
        transport: Optional httpx transport (tests inject a MockTransport)
        timeout: Request timeout in seconds

    Example:
        >>> client = VoiceCommandClient("http://localhost:8001", "dev-admin-key")
        >>> reply = await client.handle_command("how many pending orders")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        speech: Optional[SpeechOutput] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
    ):
        self.speech = speech
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
            timeout=timeout,
        )

    async def submit(self, command: str) -> dict[str, Any]:
        """
        Post a command and return the decoded JSON body.

        Raises:
            httpx.HTTPStatusError: For 4xx/5xx responses
            httpx.HTTPError: For transport failures
        """
        response = await self._client.post("/api/ai/process-command", json={"command": command})
        response.raise_for_status()
        return response.json()

    async def status(self) -> dict[str, Any]:
        response = await self._client.get("/api/ai/status")
        response.raise_for_status()
        return response.json()

    async def handle_command(self, command: str) -> str:
        """Submit a command and return (and optionally speak) the reply text."""
        try:
            payload = await self.submit(command)
            reply = payload.get("response") or "Command processed successfully."
        except httpx.HTTPStatusError as e:
            reply = self._error_text(e.response)
            logger.warning(f"Command rejected ({e.response.status_code}): {reply}")
        except httpx.HTTPError as e:
            reply = "I couldn't reach the command service. Please try again."
            logger.error(f"Command service unreachable: {e}")

        if self.speech is not None:
            await self.speech.speak_async(reply)
        return reply

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        if response.status_code == 401:
            return "I'm not authorized to run commands. Check the API key."
        try:
            return response.json().get("error") or f"Request failed ({response.status_code})."
        except ValueError:
            return f"Request failed ({response.status_code})."

    async def aclose(self) -> None:
        await self._client.aclose()
