"""
Command Processor

Runs one command through the whole pipeline:

    snapshot -> normalize -> analyze -> execute -> respond

A processor is built per request and holds no data between commands;
the snapshot it fetches lives only for the duration of `process()`.

Version: 4.0.0
"""

import logging
import random
import time
from typing import Optional

from kitchen_voice.core.config import Settings, get_settings
from kitchen_voice.services.llm import BaseLanguageModel
from kitchen_voice.services.store import BaseDataStore
from kitchen_voice.services.voice.analyzer import IntentAnalyzer
from kitchen_voice.services.voice.executor import CommandExecutor
from kitchen_voice.services.voice.normalizer import CommandNormalizer
from kitchen_voice.services.voice.responder import ResponseSynthesizer
from kitchen_voice.services.voice.schemas import CommandOutcome

logger = logging.getLogger(__name__)


class CommandProcessor:
    """
    Orchestrates analyzer, executor and synthesizer for one command.

    Example:
        >>> processor = CommandProcessor(get_data_store(), get_language_model())
        >>> outcome = await processor.process("system how many pending orders")
        >>> outcome.execution_result.data["pending"]
        3
    """

    def __init__(
        self,
        store: BaseDataStore,
        model: BaseLanguageModel,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        settings = settings or get_settings()

        self.store = store
        self.normalizer = CommandNormalizer(settings.mishearing_corrections)
        self.analyzer = IntentAnalyzer(
            model,
            normalizer=self.normalizer,
            timeout=settings.analysis_timeout_seconds,
            restaurant=settings.restaurant_name,
            order_limit=settings.prompt_order_limit,
            menu_limit=settings.prompt_menu_limit,
        )
        self.executor = CommandExecutor(store)
        self.synthesizer = ResponseSynthesizer(
            model,
            timeout=settings.response_timeout_seconds,
            rng=rng,
        )

    async def process(self, command: str) -> CommandOutcome:
        started = time.perf_counter()

        snapshot = await self.store.fetch_snapshot()
        normalized = self.normalizer.normalize(command)
        logger.info(f"Command: {command!r} -> {normalized!r}")

        analysis = await self.analyzer.analyze(normalized, snapshot)
        result = await self.executor.execute(analysis, snapshot)
        response = await self.synthesizer.respond(analysis, result)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Command processed in {elapsed_ms:.0f}ms (success={result.success})")

        return CommandOutcome(
            transcript=command,
            normalized=normalized,
            analysis=analysis,
            execution_result=result,
            response=response,
        )
