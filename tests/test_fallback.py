import pytest

from kitchen_voice.services.llm import LanguageModelTimeout
from kitchen_voice.services.voice.fallback import with_fallback


@pytest.mark.asyncio
async def test_primary_result_is_returned():
    calls = []

    async def primary():
        return "model"

    def fallback():
        calls.append("fallback")
        return "rules"

    assert await with_fallback(primary, fallback) == "model"
    assert calls == []


@pytest.mark.asyncio
async def test_model_error_uses_sync_fallback():
    async def primary():
        raise LanguageModelTimeout("slow")

    assert await with_fallback(primary, lambda: "rules") == "rules"


@pytest.mark.asyncio
async def test_async_fallback_is_awaited():
    async def primary():
        raise LanguageModelTimeout("slow")

    async def fallback():
        return "rules"

    assert await with_fallback(primary, fallback) == "rules"


@pytest.mark.asyncio
async def test_other_errors_propagate():
    async def primary():
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await with_fallback(primary, lambda: "rules")


@pytest.mark.asyncio
async def test_custom_predicate():
    async def primary():
        raise ValueError("bad input")

    result = await with_fallback(
        primary,
        lambda: "rules",
        predicate=lambda e: isinstance(e, ValueError),
    )
    assert result == "rules"
