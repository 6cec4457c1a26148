"""
Command Normalizer

Rewrites known speech-recognition mistakes before a command is analyzed.

Substitutions run in a fixed order, each one whole-word:
    1. Lower-case and collapse whitespace
    2. Homophones of "order" (other, all the, item, ...)
    3. Configurable mishearing corrections (depending -> pending, ...)
    4. Status synonyms (ready -> done, void -> cancelled, queue -> pending)
    5. Number words one..twenty -> digits

Number words go last so "order to" can first become "order two" and then
"order 2". No rule produces text that an earlier rule would rewrite again,
so normalizing twice gives the same result as normalizing once.
"""

import re
from typing import Optional

from kitchen_voice.models import OrderStatus

DEFAULT_MISHEARINGS = {
    r"\bdepending\b": "pending",
    r"\b(order|number)\s+to\b": r"\1 two",
}

ORDER_HOMOPHONES = ["all the", "other", "item", "request", "job", "audio", "older"]

STATUS_SYNONYMS: dict[OrderStatus, list[str]] = {
    OrderStatus.DONE: [
        "finish", "finished", "complete", "ready", "over", "cooking",
        "making", "working", "active", "begin", "preparing",
    ],
    OrderStatus.CANCELLED: ["stop", "remove", "delete", "void"],
    OrderStatus.PENDING: ["waiting", "new", "queue"],
}

NUMBER_WORDS = [
    "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen", "twenty",
]

_WHITESPACE = re.compile(r"\s+")
_ORDER_PATTERN = re.compile(r"\b(" + "|".join(ORDER_HOMOPHONES) + r")\b")
_STATUS_PATTERNS = [
    (re.compile(r"\b(" + "|".join(words) + r")\b"), status.value)
    for status, words in STATUS_SYNONYMS.items()
]
_NUMBER_PATTERN = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b")
_NUMBER_VALUES = {word: str(index + 1) for index, word in enumerate(NUMBER_WORDS)}


class CommandNormalizer:
    """
    Deterministic `str -> str` rewriter.

    Args:
        corrections: Regex -> replacement table for mishearings. Defaults to
            DEFAULT_MISHEARINGS; pass an empty dict to disable them.
    """

    def __init__(self, corrections: Optional[dict[str, str]] = None):
        table = DEFAULT_MISHEARINGS if corrections is None else corrections
        self.corrections = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in table.items()
        ]

    def normalize(self, text: str) -> str:
        result = _WHITESPACE.sub(" ", text.lower()).strip()

        result = _ORDER_PATTERN.sub("order", result)

        for pattern, replacement in self.corrections:
            result = pattern.sub(replacement, result)

        for pattern, replacement in _STATUS_PATTERNS:
            result = pattern.sub(replacement, result)

        result = _NUMBER_PATTERN.sub(lambda m: _NUMBER_VALUES[m.group(1)], result)

        return result

    __call__ = normalize


_default_normalizer = CommandNormalizer()


def normalize_command(text: str) -> str:
    """Normalize with the default mishearing table."""
    return _default_normalizer.normalize(text)


def normalize_status(value: Optional[str]) -> Optional[OrderStatus]:
    """
    Map a free-form status word to an OrderStatus.

    >>> normalize_status("Ready")
    <OrderStatus.DONE: 'done'>
    >>> normalize_status("canceled")
    <OrderStatus.CANCELLED: 'cancelled'>
    >>> normalize_status("shipped") is None
    True
    """
    if not value:
        return None

    word = str(value).strip().lower()
    for status in OrderStatus:
        if word == status.value:
            return status

    if word in ("cancel", "canceled"):
        return OrderStatus.CANCELLED

    for status, words in STATUS_SYNONYMS.items():
        if word in words:
            return status

    return None
