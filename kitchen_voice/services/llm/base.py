"""
Language Model Abstract Base Class

Defines the interface contract for hosted text-generation models and the
error hierarchy every implementation raises. Callers never see transport
details: anything that goes wrong is a LanguageModelError, which the voice
pipeline recovers from with deterministic fallbacks.

Version: 4.0.0
"""

from abc import ABC, abstractmethod
from typing import Optional


class LanguageModelError(Exception):
    """Base class for every recoverable model failure."""


class LanguageModelUnavailable(LanguageModelError):
    """No credential configured, or the service refused to serve us."""


class LanguageModelTimeout(LanguageModelError):
    """The call exceeded its time budget."""


class LanguageModelHTTPError(LanguageModelError):
    """Non-2xx response from the model endpoint."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Model endpoint returned HTTP {status_code}")

    @property
    def is_quota_error(self) -> bool:
        return self.status_code in (429, 503) or "quota" in self.body.lower()


class LanguageModelResponseError(LanguageModelError):
    """The endpoint answered but the payload had no usable text."""


class BaseLanguageModel(ABC):
    """
    Abstract base class for text-generation models.

    Example:
        >>> model = get_language_model()
        >>> try:
        ...     text = await model.generate("Say OK", timeout=10.0)
        ... except LanguageModelError:
        ...     text = "fallback"
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the model provider.

        Returns:
            str: Provider name (e.g., "gemini", "disabled")
        """
        pass

    @property
    def is_configured(self) -> bool:
        """Whether the model has the credentials it needs."""
        return True

    @abstractmethod
    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Full prompt text
            timeout: Seconds before the call is abandoned (None = no limit)

        Returns:
            str: The first candidate's text

        Raises:
            LanguageModelError: Any failure, including timeouts
        """
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None
