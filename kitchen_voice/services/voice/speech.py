"""
Speech Engine and Speech Output

MicrophoneSpeechEngine
    Continuous recognition with the SpeechRecognition library: audio is
    captured on a background thread and sent to the Google recognizer.
    Results and errors are handed back to the asyncio loop with
    call_soon_threadsafe, so SpeechCapture only ever runs on the loop.

SpeechOutput
    Text-to-speech with pyttsx3. Rate is a multiplier of the driver's
    default rate; pitch is kept in configuration because pyttsx3 drivers
    do not expose it. Synthesis failures are logged and otherwise ignored.

Version: 4.0.0
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import pyttsx3
import speech_recognition as sr

from kitchen_voice.services.voice.capture import SpeechCapture, SpeechEngine, SpeechErrorCode

logger = logging.getLogger(__name__)


class MicrophoneSpeechEngine(SpeechEngine):
    """
    SpeechRecognition-backed engine.

    Args:
        language: Recognition language (e.g. "en-US")
        recognizer: Optional pre-configured sr.Recognizer
        microphone_factory: Callable returning an audio source
        phrase_time_limit: Max seconds per captured phrase
    """

    def __init__(
        self,
        language: str = "en-US",
        recognizer: Optional[sr.Recognizer] = None,
        microphone_factory: Callable[[], Any] = sr.Microphone,
        phrase_time_limit: Optional[float] = 8.0,
    ):
        self.language = language
        self.recognizer = recognizer or sr.Recognizer()
        self.recognizer.dynamic_energy_threshold = True
        self.microphone_factory = microphone_factory
        self.phrase_time_limit = phrase_time_limit

        self._microphone = None
        self._stop_listening: Optional[Callable[..., None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listener: Optional[SpeechCapture] = None

    async def request_permission(self) -> bool:
        """Open the default microphone and calibrate for ambient noise."""
        def _open() -> bool:
            try:
                microphone = self.microphone_factory()
                with microphone as source:
                    self.recognizer.adjust_for_ambient_noise(source, duration=0.5)
            except (OSError, AttributeError) as e:
                # AttributeError is what SpeechRecognition raises without PyAudio
                logger.warning(f"Microphone unavailable: {e}")
                return False
            self._microphone = microphone
            return True

        return await asyncio.to_thread(_open)

    def start(self, listener: SpeechCapture) -> None:
        self._loop = asyncio.get_running_loop()
        self._listener = listener

        if self._microphone is None:
            self._post(listener.on_error, SpeechErrorCode.AUDIO_CAPTURE)
            return

        self._stop_listening = self.recognizer.listen_in_background(
            self._microphone,
            self._on_audio,
            phrase_time_limit=self.phrase_time_limit,
        )
        logger.info("Microphone listening started")
        self._post(listener.on_start)

    def stop(self) -> None:
        if self._stop_listening is not None:
            self._stop_listening(wait_for_stop=False)
            self._stop_listening = None
            logger.info("Microphone listening stopped")
            if self._listener is not None:
                self._post(self._listener.on_end)

    def _post(self, callback: Callable[..., None], *args: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(callback, *args)

    def _on_audio(self, recognizer: sr.Recognizer, audio: sr.AudioData) -> None:
        """Runs on the SpeechRecognition background thread."""
        listener = self._listener
        if listener is None:
            return

        try:
            text = recognizer.recognize_google(audio, language=self.language)
        except sr.UnknownValueError:
            logger.debug("Unintelligible audio, ignored")
            return
        except sr.RequestError as e:
            logger.error(f"Recognition service error: {e}")
            self._post(listener.on_error, SpeechErrorCode.NETWORK)
            return
        except OSError as e:
            logger.error(f"Audio capture error: {e}")
            self._post(listener.on_error, SpeechErrorCode.AUDIO_CAPTURE)
            return

        logger.debug(f"Heard: {text!r}")
        self._post(listener.on_result, text, True)


class SpeechOutput:
    """
    Best-effort text-to-speech.

    Example:
        >>> speaker = SpeechOutput(rate=0.9, volume=0.8)
        >>> await speaker.speak_async("Order 7 has been updated to done.")
    """

    def __init__(
        self,
        rate: float = 0.9,
        pitch: float = 1.0,
        volume: float = 0.8,
        enabled: bool = True,
        engine_factory: Callable[[], Any] = pyttsx3.init,
    ):
        self.rate = rate
        self.pitch = pitch
        self.volume = volume
        self.enabled = enabled
        self.engine_factory = engine_factory
        self._engine = None

    def _get_engine(self) -> Any:
        if self._engine is None:
            engine = self.engine_factory()
            base_rate = engine.getProperty("rate") or 200
            engine.setProperty("rate", int(base_rate * self.rate))
            engine.setProperty("volume", max(0.0, min(1.0, self.volume)))

            voice_id = self.select_voice(engine.getProperty("voices") or [])
            if voice_id:
                engine.setProperty("voice", voice_id)

            self._engine = engine
        return self._engine

    @staticmethod
    def select_voice(voices: list[Any]) -> Optional[str]:
        """Prefer an English female or Google voice, then any English voice."""
        english = []
        for voice in voices:
            name = (getattr(voice, "name", "") or "").lower()
            languages = [
                lang.decode(errors="ignore") if isinstance(lang, bytes) else str(lang)
                for lang in (getattr(voice, "languages", None) or [])
            ]
            if "english" in name or any("en" in lang.lower() for lang in languages):
                english.append((voice, name))

        for voice, name in english:
            gender = (getattr(voice, "gender", "") or "").lower()
            if "female" in name or "google" in name or gender == "female":
                return voice.id

        return english[0][0].id if english else None

    def speak(self, text: str) -> bool:
        """Speak text synchronously. Returns False on any failure."""
        if not self.enabled or not text:
            return False

        try:
            engine = self._get_engine()
            engine.say(text)
            engine.runAndWait()
            return True
        except Exception as e:
            logger.warning(f"Speech synthesis failed: {e}")
            self._engine = None
            return False

    async def speak_async(self, text: str) -> bool:
        return await asyncio.to_thread(self.speak, text)
