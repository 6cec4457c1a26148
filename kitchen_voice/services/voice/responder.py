"""
Response Synthesizer

Turns an analysis and its execution result into a short reply suitable
for speech. The language model writes the reply when it is available;
otherwise a fixed template per intent is used.

Template choice for order summaries is random for variety only. The
random source is injectable so tests can seed it.

Version: 4.0.0
"""

import asyncio
import json
import logging
import random
from typing import Optional

from kitchen_voice.services.llm import BaseLanguageModel, LanguageModelTimeout
from kitchen_voice.services.voice.fallback import with_fallback
from kitchen_voice.services.voice.schemas import CommandAnalysis, ExecutionResult, Intent

logger = logging.getLogger(__name__)


ORDER_SUMMARY_TEMPLATES = [
    "You have {pending} pending orders, {done} completed orders, and {cancelled} cancelled orders.",
    "I see {pending} orders waiting, {done} finished, and {cancelled} cancelled.",
    "Currently: {pending} pending, {done} completed, {cancelled} cancelled orders.",
    "Order count: {pending} in progress, {done} done, {cancelled} cancelled.",
    "There are {pending} pending orders, {done} finished orders, {cancelled} cancelled.",
]

HELP_REPLY = (
    'You can say things like "mark order 123 as done", '
    '"how many pending orders", or "show popular items".'
)

DEFAULT_REPLY = "Command processed successfully."

ROBOTIC_PHRASES = [
    "Certainly!",
    "As an AI",
    "I have successfully",
    "Your request has been processed",
    "Command executed",
    "Here is the information you requested",
]

RESPONSE_PROMPT = """
You are a helpful assistant in a busy restaurant kitchen. Staff spoke a command and the system ran it.

Intent: {intent}
Entities: {entities}
Suggested Action: {action}
Execution Result: {result}

Write a natural, conversational reply (2-3 sentences max) that:
1. Confirms what was done, or clearly says what went wrong
2. Gives the relevant numbers or names from the result
3. Uses a friendly, professional tone
4. Is suitable for text-to-speech (no markdown, no lists, no emoji)

Vary your wording from one reply to the next. Never use these phrases:
{banned}

Reply:
"""


def build_response_prompt(analysis: CommandAnalysis, result: ExecutionResult) -> str:
    return RESPONSE_PROMPT.format(
        intent=analysis.intent.value,
        entities=json.dumps(analysis.entities.model_dump(mode="json", by_alias=True, exclude_none=True)),
        action=analysis.suggested_action,
        result=json.dumps(result.to_payload(), default=str),
        banned="\n".join(f'- "{p}"' for p in ROBOTIC_PHRASES),
    )


def fallback_response(
    analysis: CommandAnalysis,
    result: ExecutionResult,
    rng: Optional[random.Random] = None,
) -> str:
    """Deterministic reply per intent (random only among summary templates)."""
    rng = rng or random.Random()
    data = result.data or {}

    if analysis.intent == Intent.ORDER_STATUS and not result.success:
        # Executor errors are already phrased for the user
        return result.error or (
            f"I'm sorry, I couldn't update order {analysis.entities.order_number}. Please try again."
        )

    if not result.success:
        return DEFAULT_REPLY

    if analysis.intent == Intent.ORDER_STATUS:
        status = data.get("new_status") or (
            analysis.entities.status.value if analysis.entities.status else "the new status"
        )
        return f"Order {analysis.entities.order_number} has been updated to {status}."

    if analysis.intent == Intent.ORDER_QUERY:
        if "type" in data:
            return f"You have {data.get('count', 0)} {data['type']} orders."
        template = rng.choice(ORDER_SUMMARY_TEMPLATES)
        return template.format(
            pending=data.get("pending", 0),
            done=data.get("done", 0),
            cancelled=data.get("cancelled", 0),
        )

    if analysis.intent == Intent.MENU_QUERY:
        top_item = data.get("top_item")
        if top_item:
            return f"Your most popular item is {top_item['name']} with {top_item['total_ordered']} orders."
        if data.get("type") == "popular":
            return "There are no menu items yet."
        return f"There are {data.get('count', 0)} items available on the menu."

    if analysis.intent == Intent.HELP:
        return HELP_REPLY

    return DEFAULT_REPLY


class ResponseSynthesizer:
    """
    Model-first reply generation with template fallback.

    Args:
        model: Language model used for the primary path
        timeout: Seconds allowed for the model call (None = no limit)
        rng: Random source for template choice
    """

    def __init__(
        self,
        model: BaseLanguageModel,
        timeout: Optional[float] = 30.0,
        rng: Optional[random.Random] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.rng = rng or random.Random()

    async def respond(self, analysis: CommandAnalysis, result: ExecutionResult) -> str:
        return await with_fallback(
            lambda: self.respond_with_model(analysis, result),
            lambda: fallback_response(analysis, result, self.rng),
            label="Response generation",
        )

    async def respond_with_model(self, analysis: CommandAnalysis, result: ExecutionResult) -> str:
        prompt = build_response_prompt(analysis, result)
        call = self.model.generate(prompt, timeout=self.timeout)

        if self.timeout is None:
            reply = await call
        else:
            try:
                reply = await asyncio.wait_for(call, timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise LanguageModelTimeout(f"Response generation exceeded {self.timeout}s") from e

        return reply.strip()
