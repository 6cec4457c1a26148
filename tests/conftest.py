"""Test-specific fixtures."""

import asyncio
import os
from typing import Optional

# Deterministic environment before any kitchen_voice import reads settings
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"
os.environ["GEMINI_API_KEY"] = ""
os.environ["COMMAND_LOG_ENABLED"] = "false"
os.environ["ADMIN_API_KEYS"] = "dev-admin-key,second-key"

import pytest
import pytest_asyncio

from kitchen_voice.core.config import get_settings
from kitchen_voice.services.llm import BaseLanguageModel, reset_language_model
from kitchen_voice.services.store import InMemoryDataStore, reset_data_store


class ScriptedModel(BaseLanguageModel):
    """
    Language model double that replays canned replies in order.

    A reply that is an exception instance is raised instead of returned.
    The last reply repeats once the script runs out.
    """

    def __init__(self, *replies, delay: float = 0.0):
        self.replies = list(replies)
        self.delay = delay
        self.prompts: list[str] = []
        self.timeouts: list[Optional[float]] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    """Fresh caches and a private data directory for every test."""
    monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "data"))
    get_settings.cache_clear()
    reset_data_store()
    reset_language_model()
    yield
    get_settings.cache_clear()
    reset_data_store()
    reset_language_model()


@pytest.fixture
def scripted_model():
    return ScriptedModel


@pytest.fixture
def store():
    return InMemoryDataStore.seeded()


@pytest_asyncio.fixture
async def snapshot(store):
    return await store.fetch_snapshot()
