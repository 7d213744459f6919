"""Application service hosting the dictation session."""

import logging
from collections import deque
from typing import Any, Optional

from .constants import MESSAGE_HISTORY
from .livetypes import Document, MessageLevel, SessionState, StatusMessage
from .protocols.transcription import DictationConfig
from .transcription.session import SessionCoordinator
from .transport.process import AsyncioProcessSpawner, ProcessSpawner
from .transport.recorder import RecorderLauncher
from .transport.uploader import TransferLauncher
from .utils import lookup_credential

logger = logging.getLogger(__name__)


class HostEvents:
    """SessionEvents implementation for the application.

    Renders events as status messages and inserts transcriptions into the
    document captured when the session started.
    """

    def __init__(self, app: "Application"):
        self._app = app

    def on_start(self) -> None:
        self._app.add_message("Recording... (toggle again to stop, cancel to abort)")

    def on_stop_requested(self) -> None:
        self._app.add_message("Stopping recording, transcribing...")

    def on_cancelled(self) -> None:
        self._app.add_message("Dictation cancelled")

    def on_transcription(self, text: str, context: Any) -> None:
        document = self._app.get_document(str(context))
        document.insert(text)
        self._app.add_message(f"Inserted {len(text)} characters into {document.id}")

    def on_error(self, message: str) -> None:
        self._app.add_message(message, level=MessageLevel.ERROR)


class Application:
    """Application service that owns the coordinator and its documents."""

    def __init__(
        self,
        config: Optional[DictationConfig] = None,
        spawner: Optional[ProcessSpawner] = None,
    ) -> None:
        """Initialize the application."""
        self.config = config or DictationConfig.from_env()
        self.spawner = spawner or AsyncioProcessSpawner()
        self.documents: dict[str, Document] = {}
        self.messages: deque[StatusMessage] = deque(maxlen=MESSAGE_HISTORY)

        self.recorder = RecorderLauncher(self.spawner, self.config.recorder_command)
        self.transfer = TransferLauncher(
            self.spawner,
            model=self.config.model,
            language=self.config.language,
            executable=self.config.uploader,
        )
        self.coordinator = SessionCoordinator(
            self.recorder,
            self.transfer,
            self.config,
            events=HostEvents(self),
            credential_provider=self.get_credential,
        )

    def get_credential(self) -> Optional[str]:
        return lookup_credential(self.config.endpoint, self.config.credential)

    def get_document(self, document_id: str) -> Document:
        """Get a document, creating an empty one on first use."""
        document = self.documents.get(document_id)
        if document is None:
            document = Document(id=document_id)
            self.documents[document_id] = document
        return document

    def set_document(self, document_id: str, content: str, cursor: Optional[int] = None) -> Document:
        """Replace a document's content; the cursor defaults to the end."""
        document = Document(
            id=document_id,
            content=content,
            cursor=len(content) if cursor is None else min(cursor, len(content)),
        )
        self.documents[document_id] = document
        return document

    def add_message(self, message: str, level: MessageLevel = MessageLevel.INFO) -> None:
        self.messages.append(StatusMessage(level=level, message=message))
        if level == MessageLevel.ERROR:
            logger.warning(message)
        else:
            logger.info(message)

    async def toggle(self, document_id: str) -> SessionState:
        """Start dictating into document_id, or stop the running recording.

        Raises:
            MissingDependency: If the recorder cannot be found
        """
        self.get_document(document_id)
        return await self.coordinator.toggle(context=document_id)

    def cancel(self) -> bool:
        return self.coordinator.cancel()

    def status(self) -> dict[str, Any]:
        snapshot = self.coordinator.snapshot()
        return {
            "state": snapshot["state"],
            "sessionId": snapshot["session_id"],
            "documentId": snapshot["context"],
            "livePids": snapshot["live_pids"],
            "messages": list(self.messages),
        }

    def is_recorder_available(self) -> bool:
        return self.spawner.which(self.recorder.executable) is not None

    def is_uploader_available(self) -> bool:
        return self.spawner.which(self.transfer.executable) is not None

    async def shutdown(self) -> None:
        """Cancel any session and wait for its processes."""
        logger.info("Shutting down application")
        await self.coordinator.shutdown()
