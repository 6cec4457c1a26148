import asyncio
from types import SimpleNamespace

import pytest
import speech_recognition as sr

from kitchen_voice.services.voice.capture import SpeechErrorCode
from kitchen_voice.services.voice.speech import MicrophoneSpeechEngine, SpeechOutput


# =============================================================================
# SpeechOutput
# =============================================================================

class FakeTTSEngine:
    def __init__(self, voices=None, fail=False):
        self.properties = {"rate": 200, "volume": 1.0, "voices": voices or []}
        self.spoken = []
        self.fail = fail

    def getProperty(self, name):
        return self.properties.get(name)

    def setProperty(self, name, value):
        self.properties[name] = value

    def say(self, text):
        if self.fail:
            raise RuntimeError("no audio device")
        self.spoken.append(text)

    def runAndWait(self):
        pass


def test_speak_applies_rate_volume_and_voice():
    voices = [
        SimpleNamespace(id="fr", name="French", languages=["fr_FR"], gender=None),
        SimpleNamespace(id="en-m", name="English (Male)", languages=[b"\x05en_US"], gender="male"),
        SimpleNamespace(id="en-f", name="English Female", languages=["en_GB"], gender="female"),
    ]
    engine = FakeTTSEngine(voices)
    output = SpeechOutput(rate=0.9, volume=0.8, engine_factory=lambda: engine)

    assert output.speak("Order 104 has been updated to done.") is True
    assert engine.spoken == ["Order 104 has been updated to done."]
    assert engine.properties["rate"] == 180
    assert engine.properties["volume"] == 0.8
    assert engine.properties["voice"] == "en-f"


def test_select_voice_falls_back_to_any_english_voice():
    voices = [
        SimpleNamespace(id="de", name="German", languages=["de_DE"]),
        SimpleNamespace(id="en", name="Daniel", languages=["en_GB"]),
    ]
    assert SpeechOutput.select_voice(voices) == "en"
    assert SpeechOutput.select_voice([]) is None


def test_speak_failure_is_reported_not_raised():
    output = SpeechOutput(engine_factory=lambda: FakeTTSEngine(fail=True))
    assert output.speak("hello") is False


def test_disabled_output_does_not_touch_engine():
    def factory():
        raise AssertionError("engine should not be created")

    output = SpeechOutput(enabled=False, engine_factory=factory)
    assert output.speak("hello") is False


@pytest.mark.asyncio
async def test_speak_async_runs_in_thread():
    engine = FakeTTSEngine()
    output = SpeechOutput(engine_factory=lambda: engine)
    assert await output.speak_async("Two pending.") is True
    assert engine.spoken == ["Two pending."]


# =============================================================================
# MicrophoneSpeechEngine
# =============================================================================

class FakeRecognizer:
    def __init__(self, outcome):
        self.outcome = outcome
        self.dynamic_energy_threshold = False

    def recognize_google(self, audio, language="en-US"):
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def adjust_for_ambient_noise(self, source, duration=1):
        pass


class RecordingListener:
    def __init__(self):
        self.results = []
        self.errors = []

    def on_result(self, text, is_final):
        self.results.append((text, is_final))

    def on_error(self, code):
        self.errors.append(code)


async def _feed_audio(outcome):
    engine = MicrophoneSpeechEngine(recognizer=FakeRecognizer(outcome))
    listener = RecordingListener()
    engine._loop = asyncio.get_running_loop()
    engine._listener = listener

    await asyncio.to_thread(engine._on_audio, engine.recognizer, object())
    await asyncio.sleep(0)
    return listener


@pytest.mark.asyncio
async def test_recognized_text_is_posted_as_final_result():
    listener = await _feed_audio("system how many pending orders over")
    assert listener.results == [("system how many pending orders over", True)]
    assert listener.errors == []


@pytest.mark.asyncio
async def test_unintelligible_audio_is_ignored():
    listener = await _feed_audio(sr.UnknownValueError())
    assert listener.results == []
    assert listener.errors == []


@pytest.mark.asyncio
async def test_recognition_service_failure_is_network_error():
    listener = await _feed_audio(sr.RequestError("quota"))
    assert listener.errors == [SpeechErrorCode.NETWORK]


@pytest.mark.asyncio
async def test_missing_microphone_denies_permission():
    def no_microphone():
        raise OSError("No Default Input Device Available")

    engine = MicrophoneSpeechEngine(
        recognizer=FakeRecognizer("unused"),
        microphone_factory=no_microphone,
    )
    assert await engine.request_permission() is False
