"""Transfer launcher: uploads a recording for transcription.

The upload itself is done by an external HTTP transfer tool (curl), so the
session can kill it like any other child process.
"""

import logging
from pathlib import Path

from ..livetypes import MissingCredential, MissingDependency
from ..protocols.transcription import (
    TranscriptionResponse,
    build_upload_command,
    build_upload_headers,
    parse_response,
)
from .process import ProcessHandle, ProcessSpawner

logger = logging.getLogger(__name__)


class TransferLauncher:
    """Builds and starts the upload process and parses its output."""

    def __init__(
        self,
        spawner: ProcessSpawner,
        model: str,
        language: str = "",
        executable: str = "curl",
    ):
        self.spawner = spawner
        self.model = model
        self.language = language
        self.executable = executable

    def check_available(self) -> str:
        path = self.spawner.which(self.executable)
        if not path:
            raise MissingDependency(self.executable)
        return path

    async def start(
        self, artifact_path: Path | str, endpoint: str, credential: str
    ) -> ProcessHandle:
        """Start uploading artifact_path to endpoint.

        Raises:
            MissingCredential: If no credential is given, before spawning
            MissingDependency: If the uploader executable is absent
        """
        if not credential:
            raise MissingCredential(f"No credential configured for {endpoint}")
        self.check_available()

        argv = build_upload_command(
            str(artifact_path),
            endpoint,
            self.model,
            language=self.language,
            executable=self.executable,
        )
        handle = await self.spawner.spawn(argv, stdin_data=build_upload_headers(credential))
        logger.info(
            "Upload started",
            extra={"pid": handle.pid, "endpoint": endpoint, "model": self.model},
        )
        return handle

    @staticmethod
    def parse_response(raw_bytes: bytes) -> TranscriptionResponse:
        return parse_response(raw_bytes)
