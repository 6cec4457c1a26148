import asyncio
import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from kitchen_voice.core.config import get_settings
from kitchen_voice.models import OrderStatus
from kitchen_voice.services.llm import DisabledLanguageModel, LanguageModelHTTPError
from kitchen_voice.services.store import InMemoryDataStore, OrderSnapshot
from kitchen_voice.services.voice import CommandProcessor
from kitchen_voice.services.voice.responder import DEFAULT_REPLY, ORDER_SUMMARY_TEMPLATES
from kitchen_voice.services.voice.schemas import AnalysisSource, Intent


@pytest.mark.asyncio
async def test_fallback_pipeline_updates_order(store):
    processor = CommandProcessor(store, DisabledLanguageModel())

    outcome = await processor.process("Mark other 104 as ready")

    assert outcome.transcript == "Mark other 104 as ready"
    assert outcome.normalized == "mark order 104 as done"
    assert outcome.analysis.source == AnalysisSource.FALLBACK
    assert outcome.execution_result.success is True
    assert outcome.response == "Order 104 has been updated to done."
    assert store.write_count == 1


@pytest.mark.asyncio
async def test_payload_shape(store):
    processor = CommandProcessor(store, DisabledLanguageModel(), rng=random.Random(1))

    payload = (await processor.process("how many pending orders")).to_payload()

    assert set(payload) == {"success", "analysis", "executionResult", "response", "transcript"}
    assert payload["success"] is True
    assert payload["analysis"]["intent"] == "order_query"
    assert payload["analysis"]["suggestedAction"] == "Query order information"
    assert payload["executionResult"]["data"]["pending"] == 3
    expected = {t.format(pending=3, done=2, cancelled=1) for t in ORDER_SUMMARY_TEMPLATES}
    assert payload["response"] in expected


@pytest.mark.asyncio
async def test_model_pipeline(store, scripted_model):
    model = scripted_model(
        json.dumps({
            "intent": "order_status",
            "entities": {"orderNumber": 105, "status": "cancelled"},
            "confidence": 0.95,
            "suggestedAction": "Update order 105 to cancelled",
        }),
        "Order 105 is cancelled now.",
    )
    processor = CommandProcessor(store, model)

    outcome = await processor.process("scrap order 105")

    assert outcome.analysis.source == AnalysisSource.MODEL
    assert outcome.execution_result.data["new_status"] == "cancelled"
    assert outcome.response == "Order 105 is cancelled now."
    assert len(model.prompts) == 2
    assert "Order #105: pending" in model.prompts[0]


@pytest.mark.asyncio
async def test_quota_error_on_analysis_still_answers_with_model(store, scripted_model):
    model = scripted_model(LanguageModelHTTPError(429, "quota"), "Here is some help.")
    processor = CommandProcessor(store, model)

    outcome = await processor.process("what can you do")

    assert outcome.analysis.source == AnalysisSource.FALLBACK
    assert outcome.analysis.intent == Intent.HELP
    assert outcome.response == "Here is some help."


@pytest.mark.asyncio
async def test_unknown_command_reply(store):
    outcome = await CommandProcessor(store, DisabledLanguageModel()).process("blah blah")

    assert outcome.execution_result.success is False
    assert outcome.response == DEFAULT_REPLY


@pytest.mark.asyncio
async def test_concurrent_commands_on_one_order_write_once(store):
    model = DisabledLanguageModel()

    outcomes = await asyncio.gather(
        CommandProcessor(store, model).process("mark order 105 as done"),
        CommandProcessor(store, model).process("mark order 105 as done"),
    )

    successes = [o for o in outcomes if o.execution_result.success]
    assert len(successes) == 1
    assert store.write_count == 1
    current = [o for o in await store.list_orders() if o.order_number == 105][0]
    assert current.status == OrderStatus.DONE


@pytest.mark.asyncio
async def test_mishearing_table_comes_from_settings(store, monkeypatch):
    monkeypatch.setenv("MISHEARING_CORRECTIONS", json.dumps({r"\bpad tie\b": "pad thai"}))
    get_settings.cache_clear()

    processor = CommandProcessor(store, DisabledLanguageModel(), settings=get_settings())

    assert processor.normalizer.normalize("pad tie") == "pad thai"
    assert processor.normalizer.normalize("depending") == "depending"


def _kitchen(statuses: dict[int, OrderStatus]) -> InMemoryDataStore:
    now = datetime.now(timezone.utc)
    return InMemoryDataStore(orders=[
        OrderSnapshot(
            order_id=index + 1,
            order_number=number,
            total_amount=10.0,
            status=status,
            created_at=now - timedelta(minutes=index),
        )
        for index, (number, status) in enumerate(statuses.items())
    ])


@pytest.mark.asyncio
async def test_summary_counts_match_store():
    statuses = {n: OrderStatus.PENDING for n in (40, 41, 42)}
    statuses.update({n: OrderStatus.DONE for n in (30, 31, 32, 33, 34)})
    statuses[20] = OrderStatus.CANCELLED
    processor = CommandProcessor(_kitchen(statuses), DisabledLanguageModel())

    outcome = await processor.process("how many pending orders")

    data = outcome.execution_result.data
    assert (data["pending"], data["done"], data["cancelled"], data["total"]) == (3, 5, 1, 9)
    assert outcome.response in {t.format(pending=3, done=5, cancelled=1) for t in ORDER_SUMMARY_TEMPLATES}


@pytest.mark.asyncio
async def test_cancel_pending_order():
    store = _kitchen({42: OrderStatus.PENDING, 43: OrderStatus.DONE})

    outcome = await CommandProcessor(store, DisabledLanguageModel()).process("cancel order 42")

    assert outcome.execution_result.success is True
    assert outcome.execution_result.data["previous_status"] == "pending"
    assert outcome.execution_result.data["new_status"] == "cancelled"
    assert store.write_count == 1
