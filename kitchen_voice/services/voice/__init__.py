"""
Voice Command Pipeline

Normalizer, intent analyzer, executor and response synthesizer, wired
together by CommandProcessor. Capture-side pieces (KeywordGate,
ActivationSession, SpeechCapture) live in `capture`; the microphone and
text-to-speech bindings live in `speech` and are only imported by the
capture console.

Usage:
    from kitchen_voice.services.voice import CommandProcessor

    processor = CommandProcessor(get_data_store(), get_language_model())
    outcome = await processor.process("mark order 7 as done")

Version: 4.0.0
"""

from kitchen_voice.services.voice.analyzer import IntentAnalyzer, fallback_analysis
from kitchen_voice.services.voice.capture import (
    ActivationSession,
    KeywordGate,
    ListeningState,
    SpeechCapture,
    SpeechErrorCode,
)
from kitchen_voice.services.voice.executor import CommandExecutor
from kitchen_voice.services.voice.fallback import with_fallback
from kitchen_voice.services.voice.normalizer import CommandNormalizer, normalize_command, normalize_status
from kitchen_voice.services.voice.processor import CommandProcessor
from kitchen_voice.services.voice.responder import ResponseSynthesizer, fallback_response
from kitchen_voice.services.voice.schemas import (
    CommandAnalysis,
    CommandEntities,
    CommandOutcome,
    ExecutionResult,
    Intent,
)

__all__ = [
    # Pipeline
    "CommandProcessor",
    "CommandNormalizer",
    "IntentAnalyzer",
    "CommandExecutor",
    "ResponseSynthesizer",
    "with_fallback",
    "fallback_analysis",
    "fallback_response",
    "normalize_command",
    "normalize_status",
    # Capture
    "KeywordGate",
    "ActivationSession",
    "SpeechCapture",
    "ListeningState",
    "SpeechErrorCode",
    # Schemas
    "CommandAnalysis",
    "CommandEntities",
    "CommandOutcome",
    "ExecutionResult",
    "Intent",
]
