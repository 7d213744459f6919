"""Recorder launcher: starts the external audio recorder."""

import logging
from pathlib import Path
from typing import Sequence

from ..livetypes import MissingDependency
from ..protocols.transcription import build_recorder_command
from .process import ProcessHandle, ProcessSpawner

logger = logging.getLogger(__name__)


class RecorderLauncher:
    """Builds and starts the recording process.

    Usage:
        launcher = RecorderLauncher(AsyncioProcessSpawner(), config.recorder_command)
        handle = await launcher.start(300, "/tmp/dictation-x.wav")
        handle.interrupt()   # graceful stop, the recorder flushes its file
    """

    def __init__(self, spawner: ProcessSpawner, command_template: Sequence[str]):
        if not command_template:
            raise ValueError("Recorder command template is empty")
        self.spawner = spawner
        self.command_template = tuple(command_template)

    @property
    def executable(self) -> str:
        return self.command_template[0]

    def check_available(self) -> str:
        """Resolve the recorder executable.

        Returns:
            Full path of the executable

        Raises:
            MissingDependency: If the executable cannot be located
        """
        path = self.spawner.which(self.executable)
        if not path:
            raise MissingDependency(self.executable)
        return path

    def build_command(self, max_duration: int, output_path: Path | str) -> list[str]:
        return build_recorder_command(self.command_template, max_duration, str(output_path))

    async def start(self, max_duration: int, output_path: Path | str) -> ProcessHandle:
        """Start recording into output_path for at most max_duration seconds.

        Raises:
            MissingDependency: Before spawning, if the recorder is absent
        """
        self.check_available()
        argv = self.build_command(max_duration, output_path)
        handle = await self.spawner.spawn(argv)
        logger.info(
            "Recording started",
            extra={"pid": handle.pid, "output_path": str(output_path), "max_duration": max_duration},
        )
        return handle
