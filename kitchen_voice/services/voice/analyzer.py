"""
Intent Analyzer

Classifies a normalized command into one intent with entities and a
confidence score.

Primary path:
    A prompt with the intent taxonomy, the expected JSON shape and a short
    snapshot of current orders and menu items goes to the language model
    under a hard timeout. The first JSON object in the reply is parsed and
    sanitized.

Fallback path:
    Ordered keyword/regex heuristics over the normalized text. Used when the
    model is not configured, times out, returns an HTTP error or returns
    something that is not JSON. Confidence values are fixed per branch.

Version: 4.0.0
"""

import asyncio
import json
import logging
import re
from typing import Any, Optional

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.llm import (
    BaseLanguageModel,
    LanguageModelResponseError,
    LanguageModelTimeout,
)
from kitchen_voice.services.store import Snapshot
from kitchen_voice.services.voice.fallback import with_fallback
from kitchen_voice.services.voice.normalizer import (
    CommandNormalizer,
    normalize_status,
)
from kitchen_voice.services.voice.schemas import (
    AnalysisSource,
    CommandAnalysis,
    CommandEntities,
    Intent,
)

logger = logging.getLogger(__name__)


# =============================================================================
# FALLBACK HEURISTICS
# =============================================================================

STATUS_CONFIDENCE = 0.8
QUERY_CONFIDENCE = 0.7
MENU_CONFIDENCE = 0.6
HELP_CONFIDENCE = 0.8
UNKNOWN_CONFIDENCE = 0.1

_ACTION_VERBS = re.compile(r"\b(mark|set|update|change|complete|finish|cancel)\b")
_QUERY_PHRASES = re.compile(r"\b(how many|list out|what are|show me|tell me|when did|which)\b")
_ORDER_NUMBER = re.compile(r"\border\s+(\d+)")
_ANY_NUMBER = re.compile(r"(\d+)")
_MENU_WORDS = re.compile(r"\b(menu|popular|best)\b")
_POPULAR_WORDS = re.compile(r"\b(popular|best)\b")
_HELP_PHRASES = re.compile(r"\bhelp\b|\bwhat can you do\b")

# Checked in this order; "cancel" also matches "cancelled"
_STATUS_GROUPS = [
    (OrderStatus.DONE, re.compile(r"\b(done|complete|finish|ready)")),
    (OrderStatus.CANCELLED, re.compile(r"cancel")),
    (OrderStatus.PENDING, re.compile(r"\b(pending|waiting)")),
]


def _detect_status(text: str) -> Optional[OrderStatus]:
    for status, pattern in _STATUS_GROUPS:
        if pattern.search(text):
            return status
    return None


def _extract_order_number(text: str) -> Optional[int]:
    match = _ORDER_NUMBER.search(text) or _ANY_NUMBER.search(text)
    return int(match.group(1)) if match else None


def fallback_analysis(
    command: str,
    normalizer: Optional[CommandNormalizer] = None,
) -> CommandAnalysis:
    """
    Classify a command without the language model.

    Rules, first match wins:
        1. action verb, or "order <n>" with a status word -> order_status (0.8)
        2. question phrasing or any status word -> order_query (0.7)
        3. menu / popular / best -> menu_query (0.6)
        4. help / what can you do -> help (0.8)
        5. anything else -> unknown (0.1)
    """
    normalizer = normalizer or CommandNormalizer()
    text = normalizer.normalize(command)
    status = _detect_status(text)
    # Normalization turns "complete"/"finish" into "done"
    spoken_verb = _ACTION_VERBS.search(command.lower()) or _ACTION_VERBS.search(text)

    if spoken_verb or (_ORDER_NUMBER.search(text) and status):
        order_number = _extract_order_number(text)
        return CommandAnalysis(
            intent=Intent.ORDER_STATUS,
            entities=CommandEntities(order_number=order_number, status=status),
            confidence=STATUS_CONFIDENCE,
            suggested_action=(
                f"Update order {order_number or '?'} to "
                f"{status.value if status else 'unknown status'}"
            ),
            source=AnalysisSource.FALLBACK,
        )

    if _QUERY_PHRASES.search(text) or status:
        return CommandAnalysis(
            intent=Intent.ORDER_QUERY,
            confidence=QUERY_CONFIDENCE,
            suggested_action="Query order information",
            source=AnalysisSource.FALLBACK,
        )

    if _MENU_WORDS.search(text):
        parameters = {"sortBy": "popularity"} if _POPULAR_WORDS.search(text) else {}
        return CommandAnalysis(
            intent=Intent.MENU_QUERY,
            confidence=MENU_CONFIDENCE,
            suggested_action="Query menu information",
            parameters=parameters,
            source=AnalysisSource.FALLBACK,
        )

    if _HELP_PHRASES.search(text):
        return CommandAnalysis(
            intent=Intent.HELP,
            confidence=HELP_CONFIDENCE,
            suggested_action="List available commands",
            source=AnalysisSource.FALLBACK,
        )

    return CommandAnalysis(
        intent=Intent.UNKNOWN,
        confidence=UNKNOWN_CONFIDENCE,
        suggested_action="Command not understood",
        source=AnalysisSource.FALLBACK,
    )


# =============================================================================
# MODEL OUTPUT SANITIZING
# =============================================================================

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _ANY_NUMBER.search(value)
        if match:
            return int(match.group(1))
    return None


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def sanitize_analysis(raw: Any) -> CommandAnalysis:
    """
    Turn whatever JSON the model produced into a valid CommandAnalysis.

    Missing or invalid fields get safe defaults: intent `unknown`,
    confidence 0.5 (clamped to [0, 1] when numeric), empty entities and
    parameters.
    """
    if not isinstance(raw, dict):
        raise LanguageModelResponseError("Model reply is not a JSON object")

    try:
        intent = Intent(str(raw.get("intent", "")).strip().lower())
    except ValueError:
        intent = Intent.UNKNOWN

    confidence = raw.get("confidence")
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        confidence = min(1.0, max(0.0, float(confidence)))
    else:
        confidence = 0.5

    entities = raw.get("entities")
    if not isinstance(entities, dict):
        entities = {}

    parameters = raw.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}

    suggested_action = raw.get("suggestedAction")
    if not isinstance(suggested_action, str) or not suggested_action.strip():
        suggested_action = "Unable to determine action"

    return CommandAnalysis(
        intent=intent,
        entities=CommandEntities(
            order_number=_coerce_int(entities.get("orderNumber")),
            status=normalize_status(_coerce_text(entities.get("status"))),
            quantity=_coerce_int(entities.get("quantity")),
            menu_item=_coerce_text(entities.get("menuItem")),
            timeframe=_coerce_text(entities.get("timeframe")),
        ),
        confidence=confidence,
        suggested_action=suggested_action.strip(),
        parameters=parameters,
        source=AnalysisSource.MODEL,
    )


def parse_model_reply(text: str) -> CommandAnalysis:
    """Parse the first `{...}` block of a model reply."""
    match = _JSON_BLOCK.search(text)
    if not match:
        raise LanguageModelResponseError("No JSON object in model reply")

    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LanguageModelResponseError(f"Malformed JSON in model reply: {e}") from e

    return sanitize_analysis(raw)


# =============================================================================
# PROMPT
# =============================================================================

ANALYSIS_PROMPT = """
You are an AI assistant for the {restaurant} kitchen ordering system. Analyze staff voice commands and extract intent and entities.

AVAILABLE ORDERS:
{orders}

AVAILABLE MENU ITEMS:
{menu}

COMMAND TYPES:
1. ORDER_STATUS: Update order status (e.g., "mark order 123 as done", "cancel order 456", "complete order 789", "finish order 123")
2. ORDER_QUERY: Query order information (e.g., "how many pending orders", "show done orders", "list recent orders")
3. MENU_QUERY: Query menu information (e.g., "show popular items", "what's available", "best selling dishes")
4. HELP: Request help or list commands

DISAMBIGUATION:
- Commands that change an order ("mark", "set", "cancel", "complete") are ORDER_STATUS, even when phrased loosely.
- Questions about counts or lists of orders are ORDER_QUERY.
- The only valid statuses are pending, done and cancelled. Ready, finished, complete and preparing mean done.

COMMON MISHEARINGS TO WATCH FOR:
- "to" -> "two" (number context)
- "depending" -> "pending" (order status context)
- "all the", "other", "older" -> "order"

RESPONSE FORMAT (JSON only, no extra text):
{{
  "intent": "order_status|order_query|menu_query|help|unknown",
  "entities": {{
    "orderNumber": number (if mentioned),
    "status": "pending|done|cancelled" (if mentioned),
    "quantity": number (if mentioned),
    "menuItem": "string" (if mentioned),
    "timeframe": "string" (if mentioned like "today", "this hour")
  }},
  "confidence": 0.0-1.0,
  "suggestedAction": "Human readable description of what should be done",
  "parameters": {{
    "filter": "pending|done|cancelled" (for order queries about one status),
    "sortBy": "popularity" (for popularity questions)
  }}
}}

EXAMPLES:
"mark order 7 as done" -> {{"intent": "order_status", "entities": {{"orderNumber": 7, "status": "done"}}, "confidence": 0.95, "suggestedAction": "Update order 7 to done", "parameters": {{}}}}
"how many pending orders" -> {{"intent": "order_query", "entities": {{}}, "confidence": 0.9, "suggestedAction": "Count orders by status", "parameters": {{}}}}

Now analyze this command: "{command}"
"""


def build_analysis_prompt(
    command: str,
    snapshot: Snapshot,
    restaurant: str = "Thai Kitchen",
    order_limit: int = 10,
    menu_limit: int = 20,
) -> str:
    orders = "\n".join(
        f"Order #{o.order_number}: {o.status.value} - ${o.total_amount:.2f}"
        for o in snapshot.orders[:order_limit]
    ) or "(none)"
    menu = "\n".join(
        f"{m.name} ({'available' if m.availability else 'unavailable'}) - ordered {m.total_ordered} times"
        for m in snapshot.menu_items[:menu_limit]
    ) or "(none)"
    return ANALYSIS_PROMPT.format(
        restaurant=restaurant,
        orders=orders,
        menu=menu,
        command=command.replace('"', "'"),
    )


# =============================================================================
# ANALYZER
# =============================================================================

class IntentAnalyzer:
    """
    Model-first intent classification with a deterministic fallback.

    Example:
        >>> analyzer = IntentAnalyzer(get_language_model())
        >>> analysis = await analyzer.analyze("mark order 7 as done", snapshot)
        >>> analysis.entities.order_number
        7
    """

    def __init__(
        self,
        model: BaseLanguageModel,
        normalizer: Optional[CommandNormalizer] = None,
        timeout: float = 10.0,
        restaurant: str = "Thai Kitchen",
        order_limit: int = 10,
        menu_limit: int = 20,
    ):
        self.model = model
        self.normalizer = normalizer or CommandNormalizer()
        self.timeout = timeout
        self.restaurant = restaurant
        self.order_limit = order_limit
        self.menu_limit = menu_limit

    async def analyze(self, command: str, snapshot: Snapshot) -> CommandAnalysis:
        analysis = await with_fallback(
            lambda: self.analyze_with_model(command, snapshot),
            lambda: fallback_analysis(command, self.normalizer),
            label="Command analysis",
        )
        logger.info(
            f"Analysis: intent={analysis.intent.value} "
            f"confidence={analysis.confidence:.2f} source={analysis.source.value}"
        )
        return analysis

    async def analyze_with_model(self, command: str, snapshot: Snapshot) -> CommandAnalysis:
        prompt = build_analysis_prompt(
            command,
            snapshot,
            restaurant=self.restaurant,
            order_limit=self.order_limit,
            menu_limit=self.menu_limit,
        )

        try:
            reply = await asyncio.wait_for(
                self.model.generate(prompt, timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LanguageModelTimeout(f"Analysis exceeded {self.timeout}s") from e

        logger.debug(f"Model analysis reply: {reply[:300]}")
        return parse_model_reply(reply)
