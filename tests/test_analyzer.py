import asyncio
import json

import httpx
import pytest

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.llm import (
    GeminiLanguageModel,
    LanguageModelHTTPError,
    LanguageModelResponseError,
    LanguageModelUnavailable,
)
from kitchen_voice.services.voice.analyzer import (
    IntentAnalyzer,
    build_analysis_prompt,
    fallback_analysis,
    parse_model_reply,
    sanitize_analysis,
)
from kitchen_voice.services.voice.schemas import AnalysisSource, Intent


# =============================================================================
# Fallback heuristics
# =============================================================================

def test_fallback_status_command():
    analysis = fallback_analysis("mark order 7 as done")

    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number == 7
    assert analysis.entities.status == OrderStatus.DONE
    assert analysis.confidence == 0.8
    assert analysis.suggested_action == "Update order 7 to done"
    assert analysis.source == AnalysisSource.FALLBACK


def test_fallback_cancel_command():
    analysis = fallback_analysis("cancel order 12")
    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number == 12
    assert analysis.entities.status == OrderStatus.CANCELLED


def test_fallback_order_number_with_status_word_needs_no_verb():
    analysis = fallback_analysis("order 5 ready")
    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number == 5
    assert analysis.entities.status == OrderStatus.DONE


def test_fallback_normalizes_before_matching():
    analysis = fallback_analysis("mark other to as ready")
    assert analysis.entities.order_number == 2
    assert analysis.entities.status == OrderStatus.DONE


def test_fallback_status_command_without_number():
    analysis = fallback_analysis("mark it done")
    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number is None
    assert analysis.suggested_action == "Update order ? to done"


@pytest.mark.parametrize(
    "command",
    ["complete number 12", "finish number 12", "complete 12", "Finish order twelve"],
)
def test_fallback_complete_and_finish_are_status_commands(command):
    analysis = fallback_analysis(command)
    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number == 12
    assert analysis.entities.status == OrderStatus.DONE
    assert analysis.confidence == 0.8


@pytest.mark.parametrize(
    "command",
    ["how many pending orders", "list out cancelled orders", "show me what is waiting"],
)
def test_fallback_order_query(command):
    analysis = fallback_analysis(command)
    assert analysis.intent == Intent.ORDER_QUERY
    assert analysis.confidence == 0.7


def test_fallback_popular_menu_query():
    analysis = fallback_analysis("show popular items")
    assert analysis.intent == Intent.MENU_QUERY
    assert analysis.confidence == 0.6
    assert analysis.parameters == {"sortBy": "popularity"}


def test_fallback_plain_menu_query():
    analysis = fallback_analysis("what's on the menu")
    assert analysis.intent == Intent.MENU_QUERY
    assert analysis.parameters == {}


@pytest.mark.parametrize("command", ["help", "what can you do"])
def test_fallback_help(command):
    analysis = fallback_analysis(command)
    assert analysis.intent == Intent.HELP
    assert analysis.confidence == 0.8


def test_fallback_unknown():
    analysis = fallback_analysis("play some music")
    assert analysis.intent == Intent.UNKNOWN
    assert analysis.confidence == 0.1
    assert analysis.suggested_action == "Command not understood"


# =============================================================================
# Model reply parsing
# =============================================================================

def test_parse_model_reply_extracts_and_sanitizes_json():
    reply = (
        "Sure!\n```json\n"
        '{"intent": "ORDER_STATUS", "entities": {"orderNumber": "7", "status": "Ready"}, '
        '"confidence": 1.7, "suggestedAction": "Update order 7 to done"}\n```'
    )
    analysis = parse_model_reply(reply)

    assert analysis.intent == Intent.ORDER_STATUS
    assert analysis.entities.order_number == 7
    assert analysis.entities.status == OrderStatus.DONE
    assert analysis.confidence == 1.0
    assert analysis.source == AnalysisSource.MODEL


def test_sanitize_defaults_invalid_fields():
    analysis = sanitize_analysis({
        "intent": "reorder",
        "confidence": "high",
        "entities": ["7"],
        "parameters": "none",
        "suggestedAction": "",
    })

    assert analysis.intent == Intent.UNKNOWN
    assert analysis.confidence == 0.5
    assert analysis.entities.order_number is None
    assert analysis.parameters == {}
    assert analysis.suggested_action == "Unable to determine action"


def test_sanitize_clamps_negative_confidence():
    assert sanitize_analysis({"intent": "help", "confidence": -2}).confidence == 0.0


@pytest.mark.parametrize("reply", ["I cannot help with that.", "{intent: order_query,}"])
def test_parse_model_reply_rejects_non_json(reply):
    with pytest.raises(LanguageModelResponseError):
        parse_model_reply(reply)


def test_analysis_prompt_includes_snapshot(snapshot):
    prompt = build_analysis_prompt("how many pending orders", snapshot, order_limit=2)

    assert "Order #106: pending - $27.28" in prompt
    assert "Order #105" in prompt
    assert "Order #104" not in prompt
    assert "Pad Thai (available) - ordered 47 times" in prompt
    assert "Khao Soi (unavailable)" in prompt
    assert 'Now analyze this command: "how many pending orders"' in prompt


# =============================================================================
# IntentAnalyzer
# =============================================================================

@pytest.mark.asyncio
async def test_analyzer_uses_model_reply(scripted_model, snapshot):
    model = scripted_model(json.dumps({
        "intent": "order_query",
        "entities": {},
        "confidence": 0.9,
        "suggestedAction": "Count pending orders",
        "parameters": {"filter": "pending"},
    }))
    analyzer = IntentAnalyzer(model, timeout=1.0)

    analysis = await analyzer.analyze("how many pending orders", snapshot)

    assert analysis.source == AnalysisSource.MODEL
    assert analysis.intent == Intent.ORDER_QUERY
    assert analysis.parameters == {"filter": "pending"}
    assert model.timeouts == [1.0]
    assert "how many pending orders" in model.prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        LanguageModelHTTPError(429, "quota exceeded"),
        LanguageModelUnavailable("no key"),
        LanguageModelResponseError("no json"),
    ],
)
async def test_analyzer_falls_back_on_model_errors(scripted_model, snapshot, failure):
    analyzer = IntentAnalyzer(scripted_model(failure))

    analysis = await analyzer.analyze("mark order 104 as done", snapshot)

    assert analysis == fallback_analysis("mark order 104 as done")


@pytest.mark.asyncio
async def test_analyzer_falls_back_on_unparseable_reply(scripted_model, snapshot):
    analyzer = IntentAnalyzer(scripted_model("Order 104? Sounds good."))
    analysis = await analyzer.analyze("help", snapshot)
    assert analysis.source == AnalysisSource.FALLBACK
    assert analysis.intent == Intent.HELP


@pytest.mark.asyncio
async def test_analyzer_falls_back_on_timeout(scripted_model, snapshot):
    analyzer = IntentAnalyzer(scripted_model('{"intent": "help"}', delay=1.0), timeout=0.05)

    analysis = await asyncio.wait_for(analyzer.analyze("how many pending orders", snapshot), 0.5)

    assert analysis.source == AnalysisSource.FALLBACK
    assert analysis.intent == Intent.ORDER_QUERY


@pytest.mark.asyncio
async def test_analyzer_propagates_programming_errors(scripted_model, snapshot):
    analyzer = IntentAnalyzer(scripted_model(RuntimeError("bug")))
    with pytest.raises(RuntimeError):
        await analyzer.analyze("help", snapshot)


@pytest.mark.asyncio
async def test_gemini_quota_error_matches_fallback(snapshot):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Resource has been exhausted (e.g. check quota)."}})

    model = GeminiLanguageModel(api_key="test-key", transport=httpx.MockTransport(handler))
    analyzer = IntentAnalyzer(model)

    try:
        analysis = await analyzer.analyze("mark other 104 as ready", snapshot)
    finally:
        await model.aclose()

    assert analysis == fallback_analysis("mark other 104 as ready")
    assert analysis.entities.order_number == 104
