"""Dictate once from a terminal and print the transcription.

Requirements:
    A recorder (SoX `rec` by default) and curl on PATH, plus a credential in
    DICTATION_API_KEY or ~/.netrc (machine <endpoint host> login apikey).

Usage:
    python tools/dictate.py --max-duration 60 >> notes.txt

Press Enter to stop recording and transcribe, Ctrl-C to cancel.
"""

import argparse
import asyncio
import dataclasses
import logging
import signal
import sys
from typing import Any, Optional, TextIO

from voice_dictation.livetypes import DictationError, UserCancelled
from voice_dictation.protocols.transcription import DictationConfig
from voice_dictation.transcription.session import SessionCoordinator
from voice_dictation.transport.process import AsyncioProcessSpawner
from voice_dictation.transport.recorder import RecorderLauncher
from voice_dictation.transport.uploader import TransferLauncher
from voice_dictation.utils import lookup_credential


class TerminalEvents:
    """Print status to stderr and keep the outcome."""

    def __init__(self) -> None:
        self.text: Optional[str] = None
        self.error: Optional[str] = None
        self.cancelled = False

    def on_start(self) -> None:
        print("Recording... press Enter to stop, Ctrl-C to cancel.", file=sys.stderr)

    def on_stop_requested(self) -> None:
        print("Transcribing...", file=sys.stderr)

    def on_cancelled(self) -> None:
        self.cancelled = True
        print("Cancelled.", file=sys.stderr)

    def on_transcription(self, text: str, context: Any) -> None:
        self.text = text

    def on_error(self, message: str) -> None:
        self.error = message


class StopKeyReader:
    """Set an event when a line is entered on a stream.

    Reads once, then stops watching the stream. End of input (stdin from
    /dev/null, or Ctrl-D) is not a stop key.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, stream: TextIO, pressed: asyncio.Event):
        self.loop = loop
        self.stream = stream
        self.pressed = pressed

    def start(self) -> bool:
        """Watch the stream. Returns False if it cannot be polled."""
        try:
            self.loop.add_reader(self.stream.fileno(), self.on_readable)
        except PermissionError:
            # Regular files and /dev/null: no stop key
            return False
        return True

    def stop(self) -> None:
        self.loop.remove_reader(self.stream.fileno())

    def on_readable(self) -> None:
        line = self.stream.readline()
        self.stop()
        if line:
            self.pressed.set()


async def dictate(config: DictationConfig) -> str:
    events = TerminalEvents()
    spawner = AsyncioProcessSpawner()
    coordinator = SessionCoordinator(
        RecorderLauncher(spawner, config.recorder_command),
        TransferLauncher(
            spawner,
            model=config.model,
            language=config.language,
            executable=config.uploader,
        ),
        config,
        events=events,
        credential_provider=lambda: lookup_credential(config.endpoint, config.credential),
    )

    loop = asyncio.get_running_loop()
    stop_pressed = asyncio.Event()

    await coordinator.toggle(context="stdout")
    loop.add_signal_handler(signal.SIGINT, coordinator.cancel)
    reader = StopKeyReader(loop, sys.stdin, stop_pressed)
    reader.start()
    try:
        pipeline = asyncio.ensure_future(coordinator.drain())
        stop_wait = asyncio.ensure_future(stop_pressed.wait())
        await asyncio.wait({pipeline, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        if stop_pressed.is_set():
            coordinator.request_stop()
        stop_wait.cancel()
        await pipeline
    finally:
        reader.stop()
        loop.remove_signal_handler(signal.SIGINT)

    if events.cancelled:
        raise UserCancelled("Dictation cancelled")
    if events.error:
        raise DictationError(events.error)
    return events.text or ""


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record speech and print its transcription.")
    parser.add_argument("--max-duration", type=int, help="Maximum recording length in seconds.")
    parser.add_argument("--endpoint", help="Transcription endpoint URL.")
    parser.add_argument("--model", help="Model identifier sent with the upload.")
    parser.add_argument("--language", help="Optional language hint, e.g. 'en'.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr.")
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    config = DictationConfig.from_env()
    overrides = {
        "max_duration": args.max_duration,
        "endpoint": args.endpoint,
        "model": args.model,
        "language": args.language,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    try:
        text = asyncio.run(dictate(config))
    except UserCancelled:
        return 130
    except DictationError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
