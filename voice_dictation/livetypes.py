"""Pydantic models and types for the voice dictation service."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """State of the dictation session."""

    IDLE = "idle"
    RECORDING = "recording"
    STOP_REQUESTED = "stop_requested"
    UPLOADING = "uploading"


class MessageLevel(str, Enum):
    """Severity of a status message shown to the user."""

    INFO = "info"
    ERROR = "error"


class StatusMessage(BaseModel):
    """A status-line message emitted by the host."""

    level: MessageLevel = MessageLevel.INFO
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)


class Document(BaseModel):
    """An insertion target for transcribed text."""

    id: str
    content: str = ""
    cursor: int = Field(default=0, ge=0)

    def insert(self, text: str) -> None:
        """Insert text at the cursor and move the cursor past it."""
        cursor = min(self.cursor, len(self.content))
        self.content = self.content[:cursor] + text + self.content[cursor:]
        self.cursor = cursor + len(text)


class ToggleRequest(BaseModel):
    """Request to start dictation, or stop it if already recording."""

    documentId: str = Field(default="scratch", description="Document receiving the text")


class ToggleResponse(BaseModel):
    """Response after a toggle action."""

    status: str = "ok"
    state: SessionState


class CancelResponse(BaseModel):
    """Response after a cancel action."""

    status: str = "ok"
    cancelled: bool


class DocumentUpdateRequest(BaseModel):
    """Request to replace a document's content."""

    content: str = ""
    cursor: Optional[int] = Field(default=None, ge=0)


class StatusResponse(BaseModel):
    """Current state of the dictation service."""

    state: SessionState
    sessionId: Optional[str] = None
    documentId: Optional[str] = None
    livePids: list[int] = Field(default_factory=list)
    messages: list[StatusMessage] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""
    recorder_available: bool = False
    uploader_available: bool = False
    credential_configured: bool = False


# Exceptions
class DictationError(Exception):
    """Base exception for dictation failures."""

    retcode: int = 500

    def __init__(self, message: str, retcode: Optional[int] = None):
        super().__init__(message)
        if retcode is not None:
            self.retcode = retcode


class MissingDependency(DictationError):
    """An external executable could not be located."""

    retcode = 503

    def __init__(self, executable: str):
        super().__init__(f"Required executable not found: {executable}")
        self.executable = executable


class MissingCredential(DictationError):
    """No credential is available for the transcription endpoint."""

    retcode = 503


class AbnormalRecorderExit(DictationError):
    """The recorder exited with a code outside the success set."""

    def __init__(self, returncode: int, stderr: str = ""):
        message = f"Recorder exited abnormally with code {returncode}"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class TranscriptionParseError(DictationError):
    """The uploader output could not be parsed."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message, retcode=502)
        self.raw = raw


class MissingTranscriptionField(TranscriptionParseError):
    """The response parsed but carried no usable text."""

    pass


class UserCancelled(DictationError):
    """The session ended because the user cancelled it."""

    retcode = 409
