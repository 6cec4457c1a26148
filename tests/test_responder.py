import asyncio
import random

import pytest

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.llm import LanguageModelUnavailable
from kitchen_voice.services.voice.responder import (
    DEFAULT_REPLY,
    HELP_REPLY,
    ORDER_SUMMARY_TEMPLATES,
    ROBOTIC_PHRASES,
    ResponseSynthesizer,
    build_response_prompt,
    fallback_response,
)
from kitchen_voice.services.voice.schemas import (
    CommandAnalysis,
    CommandEntities,
    ExecutionResult,
    Intent,
)

STATUS = CommandAnalysis(
    intent=Intent.ORDER_STATUS,
    entities=CommandEntities(order_number=104, status=OrderStatus.DONE),
)
QUERY = CommandAnalysis(intent=Intent.ORDER_QUERY)
MENU = CommandAnalysis(intent=Intent.MENU_QUERY)


def test_failure_reply_is_the_execution_error():
    result = ExecutionResult.fail("Order 999 not found. Please check the order number.")
    assert fallback_response(STATUS, result) == "Order 999 not found. Please check the order number."


def test_failed_unknown_command_gets_the_generic_reply():
    result = ExecutionResult.fail("Command not understood. Could you please rephrase it?")
    assert fallback_response(CommandAnalysis(intent=Intent.UNKNOWN), result) == DEFAULT_REPLY


def test_status_reply():
    result = ExecutionResult.ok("Order 104 updated to done", data={"new_status": "done"})
    assert fallback_response(STATUS, result) == "Order 104 has been updated to done."


def test_filtered_query_reply():
    result = ExecutionResult.ok("Found 3 pending orders", data={"count": 3, "orders": [], "type": "pending"})
    assert fallback_response(QUERY, result) == "You have 3 pending orders."


def test_summary_reply_uses_one_of_the_templates():
    result = ExecutionResult.ok("summary", data={"pending": 3, "done": 2, "cancelled": 1, "total": 6})
    expected = {t.format(pending=3, done=2, cancelled=1) for t in ORDER_SUMMARY_TEMPLATES}

    replies = {fallback_response(QUERY, result, random.Random(seed)) for seed in range(50)}

    assert replies <= expected
    assert len(replies) > 1


def test_summary_reply_is_reproducible_with_seeded_rng():
    result = ExecutionResult.ok("summary", data={"pending": 3, "done": 2, "cancelled": 1})
    first = fallback_response(QUERY, result, random.Random(7))
    assert fallback_response(QUERY, result, random.Random(7)) == first


def test_menu_replies():
    top = ExecutionResult.ok("top", data={
        "items": [], "type": "popular",
        "top_item": {"name": "Pad Thai", "total_ordered": 47},
    })
    empty = ExecutionResult.ok("none", data={"items": [], "type": "popular", "top_item": None})
    available = ExecutionResult.ok("avail", data={"items": [], "type": "available", "count": 7})

    assert fallback_response(MENU, top) == "Your most popular item is Pad Thai with 47 orders."
    assert fallback_response(MENU, empty) == "There are no menu items yet."
    assert fallback_response(MENU, available) == "There are 7 items available on the menu."


def test_help_and_default_replies():
    ok = ExecutionResult.ok("done")
    assert fallback_response(CommandAnalysis(intent=Intent.HELP), ok) == HELP_REPLY
    assert fallback_response(CommandAnalysis(intent=Intent.UNKNOWN), ok) == DEFAULT_REPLY


def test_response_prompt_lists_banned_phrases():
    result = ExecutionResult.ok("Order 104 updated to done", data={"new_status": "done"})
    prompt = build_response_prompt(STATUS, result)

    assert '"orderNumber": 104' in prompt
    assert "Order 104 updated to done" in prompt
    for phrase in ROBOTIC_PHRASES:
        assert phrase in prompt


@pytest.mark.asyncio
async def test_synthesizer_returns_stripped_model_reply(scripted_model):
    synthesizer = ResponseSynthesizer(scripted_model("  Order 104 is ready to go.  \n"))
    reply = await synthesizer.respond(STATUS, ExecutionResult.ok("ok", data={"new_status": "done"}))
    assert reply == "Order 104 is ready to go."


@pytest.mark.asyncio
async def test_synthesizer_falls_back_on_model_error(scripted_model):
    synthesizer = ResponseSynthesizer(scripted_model(LanguageModelUnavailable("down")))
    reply = await synthesizer.respond(STATUS, ExecutionResult.ok("ok", data={"new_status": "done"}))
    assert reply == "Order 104 has been updated to done."


@pytest.mark.asyncio
async def test_synthesizer_falls_back_on_timeout(scripted_model):
    synthesizer = ResponseSynthesizer(scripted_model("late reply", delay=1.0), timeout=0.05)
    reply = await asyncio.wait_for(
        synthesizer.respond(CommandAnalysis(intent=Intent.HELP), ExecutionResult.ok("help")),
        0.5,
    )
    assert reply == HELP_REPLY


@pytest.mark.asyncio
async def test_synthesizer_without_timeout_waits_for_model(scripted_model):
    model = scripted_model("Two pending.", delay=0.05)
    synthesizer = ResponseSynthesizer(model, timeout=None)

    assert await synthesizer.respond(QUERY, ExecutionResult.ok("ok")) == "Two pending."
    assert model.timeouts == [None]
