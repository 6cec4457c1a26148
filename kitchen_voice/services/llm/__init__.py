"""
Language Model Factory

Usage:
    from kitchen_voice.services.llm import get_language_model

    model = get_language_model()
    text = await model.generate(prompt, timeout=10.0)

Provider selection:
    - GEMINI_API_KEY set → GeminiLanguageModel
    - otherwise → DisabledLanguageModel (fallback heuristics only)

Version: 4.0.0
"""

import logging
from functools import lru_cache

from kitchen_voice.core.config import get_settings
from kitchen_voice.services.llm.base import (
    BaseLanguageModel,
    LanguageModelError,
    LanguageModelHTTPError,
    LanguageModelResponseError,
    LanguageModelTimeout,
    LanguageModelUnavailable,
)
from kitchen_voice.services.llm.gemini import DisabledLanguageModel, GeminiLanguageModel

logger = logging.getLogger(__name__)


@lru_cache()
def get_language_model() -> BaseLanguageModel:
    """
    Get the configured language model instance.

    Returns:
        BaseLanguageModel: Gemini client or the disabled stand-in
    """
    settings = get_settings()

    if settings.gemini_api_key:
        logger.info(f"Language Model: Using Gemini ({settings.gemini_model})")
        return GeminiLanguageModel(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
        )

    logger.info("Language Model: No GEMINI_API_KEY, fallback heuristics only")
    return DisabledLanguageModel()


def reset_language_model() -> None:
    """Clear the cached language model instance."""
    get_language_model.cache_clear()
    logger.debug("Language model cache cleared")


__all__ = [
    "get_language_model",
    "reset_language_model",
    "BaseLanguageModel",
    "LanguageModelError",
    "LanguageModelUnavailable",
    "LanguageModelTimeout",
    "LanguageModelHTTPError",
    "LanguageModelResponseError",
    "GeminiLanguageModel",
    "DisabledLanguageModel",
]
