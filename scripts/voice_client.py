"""
Voice Command Console

Listens on the microphone, gates speech into commands, sends each command
to the command service and speaks the reply.
Run from project root: python scripts/voice_client.py

Modes:
    gate        "System, <command>, over."  (default)
    activation  "Hey restaurant" once, then every phrase is a command
    text        Type commands; no microphone needed

Version: 4.0.0
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from kitchen_voice.core.config import get_settings, setup_logging
from kitchen_voice.services.voice.capture import (
    ActivationSession,
    CaptureFrontEnd,
    KeywordGate,
    SpeechCapture,
)
from kitchen_voice.services.voice.client import VoiceCommandClient
from kitchen_voice.services.voice.speech import MicrophoneSpeechEngine, SpeechOutput

logger = logging.getLogger("kitchen_voice.console")


def build_front_end(mode: str) -> CaptureFrontEnd:
    settings = get_settings()
    if mode == "activation":
        return ActivationSession(
            wake_phrases=settings.wake_phrases_list,
            timeout=settings.activation_timeout_seconds,
            on_activate=lambda: print("🎙️  Voice control active"),
            on_deactivate=lambda: print("💤 Voice control inactive"),
        )
    return KeywordGate(
        keywords=settings.activation_keywords_list,
        terminator=settings.terminator_phrase,
    )


async def run_text(client: VoiceCommandClient) -> None:
    print('Type a command ("quit" to exit).')
    while True:
        line = await asyncio.to_thread(input, "> ")
        command = line.strip()
        if command.lower() in ("quit", "exit"):
            return
        if command:
            print(f"🗣️  {await client.handle_command(command)}")


async def run_voice(client: VoiceCommandClient, mode: str) -> None:
    settings = get_settings()
    front_end = build_front_end(mode)
    pending: set[asyncio.Task] = set()

    async def answer(command: str) -> None:
        print(f"📝 {command}")
        print(f"🗣️  {await client.handle_command(command)}")

    def on_command(command: str) -> None:
        task = asyncio.get_running_loop().create_task(answer(command))
        pending.add(task)
        task.add_done_callback(pending.discard)

    capture = SpeechCapture(
        engine=MicrophoneSpeechEngine(language=settings.speech_language),
        front_end=front_end,
        on_command=on_command,
        on_status=lambda text: print(f"ℹ️  {text}"),
        on_transcript=lambda text: logger.debug(f"Transcript: {text}"),
    )

    if not await capture.start():
        print(f"❌ {capture.status_text}")
        return

    try:
        # Runs until the engine stops itself (error) or Ctrl+C
        while capture.last_error is None:
            if isinstance(front_end, ActivationSession):
                front_end.check_timeout()
            await asyncio.sleep(1)
    finally:
        capture.stop()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def main(args: argparse.Namespace) -> None:
    settings = get_settings()
    speech = None
    if not args.no_speech and settings.speech_enabled:
        speech = SpeechOutput(
            rate=settings.speech_rate,
            pitch=settings.speech_pitch,
            volume=settings.speech_volume,
        )

    client = VoiceCommandClient(args.url, args.token, speech=speech)
    try:
        if args.mode == "text":
            await run_text(client)
        else:
            await run_voice(client, args.mode)
    finally:
        await client.aclose()


if __name__ == "__main__":
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Voice Command Console")
    parser.add_argument("--url", default=settings.app_base_url, help="Command service URL")
    parser.add_argument("--token", default=settings.admin_api_keys_list[0] if settings.admin_api_keys_list else "", help="Admin API key")
    parser.add_argument("--mode", choices=["gate", "activation", "text"], default="gate")
    parser.add_argument("--no-speech", action="store_true", help="Print replies without speaking them")
    args = parser.parse_args()

    setup_logging()
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        print("\n👋 Stopped")
