"""
Fallback combinator shared by the analyzer and the response synthesizer.
"""

import inspect
import logging
from typing import Awaitable, Callable, TypeVar, Union

from kitchen_voice.services.llm import LanguageModelError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_model_error(exc: BaseException) -> bool:
    return isinstance(exc, LanguageModelError)


async def with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Union[T, Awaitable[T]]],
    predicate: Callable[[BaseException], bool] = is_model_error,
    label: str = "operation",
) -> T:
    """
    Run `primary`; if it raises an exception accepted by `predicate`,
    return `fallback()` instead.

    Exceptions the predicate rejects propagate unchanged. `fallback` may be
    a plain function or a coroutine function.

    Example:
        >>> analysis = await with_fallback(
        ...     lambda: analyze_with_model(command),
        ...     lambda: fallback_analysis(command),
        ...     label="analysis",
        ... )
    """
    try:
        return await primary()
    except Exception as e:
        if not predicate(e):
            raise
        logger.warning(f"{label} falling back: {type(e).__name__}: {e}")

    result = fallback()
    if inspect.isawaitable(result):
        return await result
    return result
