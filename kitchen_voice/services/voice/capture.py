"""
Speech Capture and Keyword Gate

Client-side state machines that decide which transcript fragments become
commands, plus the orchestrator that wires a speech engine to them.

Two interchangeable front-ends:

    KeywordGate
        waiting-for-keyword -> listening-for-command on "system" (or a
        close variant); the command ends at "over". Fragments heard while
        waiting are dropped without being shown. No timeout.

    ActivationSession
        A wake phrase ("hey restaurant", ...) activates; every final
        fragment after that is a command; 30 s without speech deactivates.

SpeechCapture handles engine events (start, end, result, error), asks for
microphone permission lazily on the first start, and stops on any error
without reconnecting.

Version: 4.0.0
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


class ListeningState(str, Enum):
    WAITING_FOR_KEYWORD = "waiting-for-keyword"
    LISTENING_FOR_COMMAND = "listening-for-command"


class SpeechErrorCode(str, Enum):
    """Closed set of engine error codes."""
    NOT_ALLOWED = "not-allowed"
    NO_SPEECH = "no-speech"
    AUDIO_CAPTURE = "audio-capture"
    NETWORK = "network"
    ABORTED = "aborted"


class PermissionState(str, Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


ERROR_MESSAGES = {
    SpeechErrorCode.NOT_ALLOWED: "Microphone permission denied. Allow microphone access and start again.",
    SpeechErrorCode.NO_SPEECH: "No speech detected. Start listening again when ready.",
    SpeechErrorCode.AUDIO_CAPTURE: "Audio capture failed. Check the microphone and start again.",
    SpeechErrorCode.NETWORK: "Network error. Check the internet connection and start again.",
    SpeechErrorCode.ABORTED: "Listening was aborted.",
}


@dataclass
class GateResult:
    """
    What a front-end produced for one fragment.

    Attributes:
        display: Text to show live, or None to show nothing
        command: Completed command, or None
    """
    display: Optional[str] = None
    command: Optional[str] = None


# =============================================================================
# FRONT-ENDS
# =============================================================================

class CaptureFrontEnd(ABC):
    """Decides which transcript fragments become commands."""

    @abstractmethod
    def feed(self, text: str, is_final: bool = True) -> GateResult:
        pass

    @abstractmethod
    def reset(self) -> None:
        """Discard any partial command."""
        pass

    @property
    @abstractmethod
    def status_text(self) -> str:
        pass


_EDGE_PUNCTUATION = " \t,.;:!?"


def _phrase_pattern(phrases: Iterable[str]) -> re.Pattern:
    # Longest first so "systems" wins over "system" at the same position
    ordered = sorted({p.strip().lower() for p in phrases if p.strip()}, key=len, reverse=True)
    if not ordered:
        raise ValueError("At least one phrase is required")
    return re.compile("|".join(re.escape(p) for p in ordered), re.IGNORECASE)


class KeywordGate(CaptureFrontEnd):
    """
    Two-state keyword gate.

    Example:
        >>> gate = KeywordGate()
        >>> gate.feed("system mark order 7").command is None
        True
        >>> gate.feed("as done over").command
        'mark order 7 as done'
    """

    def __init__(self, keywords: Iterable[str] = ("system", "sistem", "systems"), terminator: str = "over"):
        self._keyword = _phrase_pattern(keywords)
        self._terminator = re.compile(rf"\b{re.escape(terminator.strip())}\b", re.IGNORECASE)
        self.terminator = terminator.strip()
        self.state = ListeningState.WAITING_FOR_KEYWORD
        self.buffer = ""

    @property
    def status_text(self) -> str:
        if self.state == ListeningState.WAITING_FOR_KEYWORD:
            return 'Waiting for "System"'
        return f'Listening for command... say "{self.terminator}" to finish'

    def reset(self) -> None:
        self.state = ListeningState.WAITING_FOR_KEYWORD
        self.buffer = ""

    def feed(self, text: str, is_final: bool = True) -> GateResult:
        if self.state == ListeningState.WAITING_FOR_KEYWORD:
            if not is_final:
                return GateResult()
            return self._on_waiting(text)

        if not is_final:
            return GateResult(display=self._join(self.buffer, text))
        return self._on_listening(text)

    def _on_waiting(self, text: str) -> GateResult:
        match = self._keyword.search(text)
        if not match:
            logger.debug(f"No keyword in {text!r}, discarded")
            return GateResult()

        after = text[match.end():].strip()
        logger.debug(f"Keyword {match.group(0)!r} detected, command mode")
        self.state = ListeningState.LISTENING_FOR_COMMAND
        self.buffer = ""

        return self._on_listening(after)

    def _on_listening(self, text: str) -> GateResult:
        match = self._terminator.search(text)
        if not match:
            self.buffer = self._join(self.buffer, text)
            return GateResult(display=self.buffer)

        command = self._join(self.buffer, text[:match.start()])
        self.reset()
        logger.debug(f"Terminator heard, command: {command!r}")
        return GateResult(display=command, command=command or None)

    @staticmethod
    def _join(left: str, right: str) -> str:
        parts = (left.strip(_EDGE_PUNCTUATION), right.strip(_EDGE_PUNCTUATION))
        return " ".join(part for part in parts if part)


class ActivationSession(CaptureFrontEnd):
    """
    Wake-phrase front-end with an inactivity timeout.

    Args:
        wake_phrases: Phrases that activate the session
        timeout: Seconds of silence before deactivating
        clock: Monotonic time source (tests inject a fake)
        on_activate: Called when the session activates
        on_deactivate: Called when the session deactivates
    """

    def __init__(
        self,
        wake_phrases: Iterable[str] = ("hey restaurant", "voice control", "activate voice"),
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        on_activate: Optional[Callable[[], None]] = None,
        on_deactivate: Optional[Callable[[], None]] = None,
    ):
        self._wake = _phrase_pattern(wake_phrases)
        self.timeout = timeout
        self.clock = clock
        self.on_activate = on_activate
        self.on_deactivate = on_deactivate
        self.active = False
        self._last_activity = 0.0

    @property
    def status_text(self) -> str:
        return "Voice control active" if self.active else 'Say "Hey restaurant" to activate'

    def reset(self) -> None:
        if self.active:
            self._deactivate()

    def check_timeout(self) -> bool:
        """Deactivate if idle too long. Returns True when it deactivated."""
        if self.active and self.clock() - self._last_activity >= self.timeout:
            logger.info(f"No speech for {self.timeout:.0f}s, deactivating")
            self._deactivate()
            return True
        return False

    def feed(self, text: str, is_final: bool = True) -> GateResult:
        self.check_timeout()

        if not self.active:
            if is_final and self._wake.search(text):
                self.active = True
                self._last_activity = self.clock()
                logger.info("Wake phrase detected, voice control active")
                if self.on_activate:
                    self.on_activate()
            return GateResult(display=text.strip() or None)

        if not is_final:
            return GateResult(display=text.strip() or None)

        command = text.strip()
        self._last_activity = self.clock()
        return GateResult(display=command or None, command=command or None)

    def _deactivate(self) -> None:
        self.active = False
        if self.on_deactivate:
            self.on_deactivate()


# =============================================================================
# ENGINE + ORCHESTRATION
# =============================================================================

class SpeechEngine(ABC):
    """
    Continuous speech recognizer.

    Implementations push events to the listener passed to `start()` by
    calling its `on_start`, `on_end`, `on_result` and `on_error` methods.
    """

    @abstractmethod
    async def request_permission(self) -> bool:
        """Open the microphone once to check access."""
        pass

    @abstractmethod
    def start(self, listener: "SpeechCapture") -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class SpeechCapture:
    """
    Connects a speech engine to a front-end and surfaces status text.

    Args:
        engine: Speech engine producing events
        front_end: KeywordGate or ActivationSession
        on_command: Called with each completed command
        on_status: Called whenever the status text changes
        on_transcript: Called with live transcript text to display
    """

    def __init__(
        self,
        engine: SpeechEngine,
        front_end: CaptureFrontEnd,
        on_command: Callable[[str], None],
        on_status: Optional[Callable[[str], None]] = None,
        on_transcript: Optional[Callable[[str], None]] = None,
    ):
        self.engine = engine
        self.front_end = front_end
        self.on_command = on_command
        self.on_status = on_status
        self.on_transcript = on_transcript

        self.permission = PermissionState.UNKNOWN
        self.is_listening = False
        self.status_text = "Idle"
        self.last_error: Optional[SpeechErrorCode] = None

    async def start(self, retry_permission: bool = False) -> bool:
        """
        Start listening.

        Permission is requested on the first start only. After a denial,
        start() refuses until called with retry_permission=True.
        """
        if self.is_listening:
            return True

        if self.permission == PermissionState.DENIED and not retry_permission:
            self._set_status(ERROR_MESSAGES[SpeechErrorCode.NOT_ALLOWED])
            return False

        if self.permission != PermissionState.GRANTED:
            granted = await self.engine.request_permission()
            self.permission = PermissionState.GRANTED if granted else PermissionState.DENIED
            if not granted:
                logger.warning("Microphone permission denied")
                self._set_status(ERROR_MESSAGES[SpeechErrorCode.NOT_ALLOWED])
                return False

        self.last_error = None
        self.front_end.reset()
        self.engine.start(self)
        return True

    def stop(self) -> None:
        """Stop immediately and discard any partial command."""
        self.front_end.reset()
        if self.is_listening:
            self.engine.stop()
        self.is_listening = False
        self._set_status("Stopped")

    # -------------------------------------------------------------------------
    # Engine events
    # -------------------------------------------------------------------------

    def on_start(self) -> None:
        self.is_listening = True
        self._set_status(self.front_end.status_text)

    def on_end(self) -> None:
        self.is_listening = False
        if self.last_error is None:
            self._set_status("Stopped")

    def on_result(self, text: str, is_final: bool) -> None:
        if not self.is_listening:
            return

        result = self.front_end.feed(text, is_final)
        if result.display and self.on_transcript:
            self.on_transcript(result.display)
        self._set_status(self.front_end.status_text)

        if result.command:
            logger.info(f"Command captured: {result.command!r}")
            self.on_command(result.command)

    def on_error(self, code: SpeechErrorCode) -> None:
        code = SpeechErrorCode(code)
        logger.warning(f"Speech engine error: {code.value}")

        self.last_error = code
        if code == SpeechErrorCode.NOT_ALLOWED:
            self.permission = PermissionState.DENIED

        self.front_end.reset()
        if self.is_listening:
            self.engine.stop()
        self.is_listening = False
        self._set_status(ERROR_MESSAGES[code])

    def _set_status(self, text: str) -> None:
        if text != self.status_text:
            self.status_text = text
            if self.on_status:
                self.on_status(text)
