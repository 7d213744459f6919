"""Protocol definitions for external processes and services."""

from .transcription import (
    DictationConfig,
    TranscriptionResponse,
    TranscriptionResult,
    build_recorder_command,
    build_upload_command,
    build_upload_headers,
    get_auth_headers,
    parse_response,
)

__all__ = [
    "DictationConfig",
    "TranscriptionResponse",
    "TranscriptionResult",
    "build_recorder_command",
    "build_upload_command",
    "build_upload_headers",
    "get_auth_headers",
    "parse_response",
]
