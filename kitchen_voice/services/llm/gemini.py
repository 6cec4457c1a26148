"""
Gemini Language Model Implementation

Production implementation calling the Gemini `generateContent` REST
endpoint with httpx. Used whenever GEMINI_API_KEY is configured.

API Documentation:
    https://ai.google.dev/api/generate-content

Version: 4.0.0
"""

import logging
from typing import Any, Optional

import httpx

from kitchen_voice.services.llm.base import (
    BaseLanguageModel,
    LanguageModelHTTPError,
    LanguageModelResponseError,
    LanguageModelTimeout,
    LanguageModelUnavailable,
)

logger = logging.getLogger(__name__)


class GeminiLanguageModel(BaseLanguageModel):
    """
    Gemini REST client.

    Attributes:
        model: Model name (e.g. "gemini-1.5-flash")
        base_url: API root, without the `/models/...` suffix

    Example:
        >>> model = GeminiLanguageModel(api_key="...", model="gemini-1.5-flash")
        >>> await model.generate("Reply with OK", timeout=10.0)
        'OK'
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name
            base_url: REST API root
            transport: Optional httpx transport (tests inject a MockTransport)

        Raises:
            ValueError: If api_key is empty
        """
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY is required for the Gemini model. "
                "Set it in your .env file or environment variables."
            )

        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": api_key,
            },
        )

        logger.info(f"GeminiLanguageModel initialized (model={model})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "gemini"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            response = await self._client.post(
                self.endpoint,
                json=payload,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Gemini: Request timed out after {timeout}s")
            raise LanguageModelTimeout(f"Gemini request timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            logger.warning(f"Gemini: Transport error - {e}")
            raise LanguageModelUnavailable(f"Gemini unreachable: {e}") from e

        if response.status_code >= 400:
            error = LanguageModelHTTPError(response.status_code, response.text)
            if error.is_quota_error:
                logger.warning(f"Gemini: Quota/availability error {response.status_code}")
            else:
                logger.error(f"Gemini: API error {response.status_code}: {response.text[:200]}")
            raise error

        return self._extract_text(response)

    def _extract_text(self, response: httpx.Response) -> str:
        """Pull candidates[0].content.parts[0].text out of the response body."""
        try:
            data: dict[str, Any] = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LanguageModelResponseError(f"Unexpected Gemini payload: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise LanguageModelResponseError("Gemini returned an empty candidate")

        return text

    async def aclose(self) -> None:
        await self._client.aclose()


class DisabledLanguageModel(BaseLanguageModel):
    """
    Stand-in used when no API key is configured.

    Every call raises LanguageModelUnavailable without touching the
    network, which sends the pipeline straight to its fallbacks.
    """

    @property
    def provider_name(self) -> str:
        return "disabled"

    @property
    def is_configured(self) -> bool:
        return False

    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        raise LanguageModelUnavailable("No language model API key configured")
