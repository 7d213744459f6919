"""Shared fixtures: fake child processes the tests can finish at will."""

import asyncio
import wave
from pathlib import Path
from typing import Any, Optional, Sequence

import pytest

from voice_dictation.protocols.transcription import DictationConfig
from voice_dictation.transcription.session import SessionCoordinator
from voice_dictation.transport.process import ProcessExit
from voice_dictation.transport.recorder import RecorderLauncher
from voice_dictation.transport.uploader import TransferLauncher

RECORDER_TEMPLATE = ("rec", "{output}", "trim", "0", "{duration}")
ENDPOINT = "https://api.example.com/v1/audio/transcriptions"


def write_wav(path: Path | str, n_frames: int = 1600, sample_rate: int = 16000) -> None:
    """Write a mono 16-bit WAV of silence."""
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(b"\x00\x00" * n_frames)


class FakeProcess:
    """ProcessHandle whose exit is decided by the test."""

    def __init__(
        self,
        argv: Sequence[str],
        pid: int,
        exit_on_kill: bool = True,
        stdin_data: Optional[bytes] = None,
    ):
        self.argv = list(argv)
        self.stdin_data = stdin_data
        self._pid = pid
        self.exit_on_kill = exit_on_kill
        self.interrupted = False
        self.killed = False
        self.returncode: Optional[int] = None
        self._exit: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def is_running(self) -> bool:
        return self.returncode is None

    @property
    def output_path(self) -> Path:
        return Path(self.argv[1])

    def interrupt(self) -> None:
        self.interrupted = True

    def kill(self) -> None:
        self.killed = True
        if self.exit_on_kill:
            self.finish(-9)

    def finish(self, returncode: int, stdout: bytes = b"", stderr: bytes = b"") -> None:
        if self._exit.done():
            return
        self.returncode = returncode
        self._exit.set_result(ProcessExit(returncode=returncode, stdout=stdout, stderr=stderr))

    async def wait(self) -> ProcessExit:
        return await asyncio.shield(self._exit)


class FakeSpawner:
    """ProcessSpawner that records spawned argv and returns FakeProcess."""

    def __init__(self, available: Sequence[str] = ("rec", "curl"), exit_on_kill: bool = True):
        self.available = set(available)
        self.exit_on_kill = exit_on_kill
        self.spawned: list[FakeProcess] = []

    def which(self, executable: str) -> Optional[str]:
        if executable in self.available:
            return f"/usr/bin/{executable}"
        return None

    async def spawn(self, argv: Sequence[str], stdin_data: Optional[bytes] = None) -> FakeProcess:
        process = FakeProcess(
            argv,
            pid=1000 + len(self.spawned),
            exit_on_kill=self.exit_on_kill,
            stdin_data=stdin_data,
        )
        self.spawned.append(process)
        return process

    @property
    def recorders(self) -> list[FakeProcess]:
        return [p for p in self.spawned if p.argv[0] == "rec"]

    @property
    def uploaders(self) -> list[FakeProcess]:
        return [p for p in self.spawned if p.argv[0] == "curl"]

    @property
    def live(self) -> list[FakeProcess]:
        return [p for p in self.spawned if p.is_running]


class RecordingEvents:
    """SessionEvents that remember every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def on_start(self) -> None:
        self.calls.append(("start",))

    def on_stop_requested(self) -> None:
        self.calls.append(("stop_requested",))

    def on_cancelled(self) -> None:
        self.calls.append(("cancelled",))

    def on_transcription(self, text: str, context: Any) -> None:
        self.calls.append(("transcription", text, context))

    def on_error(self, message: str) -> None:
        self.calls.append(("error", message))

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    @property
    def transcriptions(self) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == "transcription"]

    @property
    def errors(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "error"]


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def config() -> DictationConfig:
    return DictationConfig(
        max_duration=60,
        recorder_command=RECORDER_TEMPLATE,
        endpoint=ENDPOINT,
        model="whisper-1",
        credential="sk-test",
    )


@pytest.fixture
def make_coordinator(spawner, events, config, tmp_path):
    """Build a coordinator wired to the fakes; keyword args override."""

    def _make(**overrides) -> SessionCoordinator:
        kwargs = dict(
            events=events,
            artifact_dir=tmp_path,
            reap_timeout=0.5,
        )
        kwargs.update(overrides)
        cfg = kwargs.pop("config", config)
        sp = kwargs.pop("spawner", spawner)
        return SessionCoordinator(
            RecorderLauncher(sp, cfg.recorder_command),
            TransferLauncher(sp, model=cfg.model, language=cfg.language, executable=cfg.uploader),
            cfg,
            **kwargs,
        )

    return _make


@pytest.fixture
def coordinator(make_coordinator) -> SessionCoordinator:
    return make_coordinator()


@pytest.fixture
def wait_until():
    """Poll a condition while letting the event loop run."""

    async def _wait_until(predicate, timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met in time")
            await asyncio.sleep(0.005)

    return _wait_until


@pytest.fixture
def finish_recording():
    """Write audio to the recorder's output path, then exit it."""

    def _finish(process: FakeProcess, returncode: int = 0) -> None:
        write_wav(process.output_path)
        process.finish(returncode)

    return _finish
