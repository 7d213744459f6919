"""Transcription protocol definitions.

Pure functions for:
- Building recorder and uploader argument vectors
- Constructing authentication headers
- Parsing transcription responses

No I/O, no state - just data transformations.
"""

import json
from dataclasses import dataclass
from typing import Optional, Sequence

from ..livetypes import MissingTranscriptionField, TranscriptionParseError

DURATION_PLACEHOLDER = "{duration}"
OUTPUT_PLACEHOLDER = "{output}"


@dataclass(frozen=True)
class TranscriptionResult:
    """Text returned by the transcription service."""

    text: str


@dataclass(frozen=True)
class TranscriptionResponse:
    """Parsed output of the uploader.

    Immutable data class. `result` is None when no transcription was
    received; `error_message` then says why and `raw` keeps the body.
    """

    result: Optional[TranscriptionResult] = None
    error_message: str = ""
    raw: str = ""
    missing_field: bool = False

    @property
    def is_success(self) -> bool:
        return self.result is not None

    @property
    def text(self) -> str:
        return self.result.text if self.result else ""

    def raise_for_error(self) -> TranscriptionResult:
        """Return the result or raise the matching parse error."""
        if self.result is not None:
            return self.result
        if self.missing_field:
            raise MissingTranscriptionField(self.error_message, raw=self.raw)
        raise TranscriptionParseError(self.error_message, raw=self.raw)


@dataclass(frozen=True)
class DictationConfig:
    """Configuration for recording and transcription.

    Immutable - create a new instance to change values.
    """

    max_duration: int
    recorder_command: tuple[str, ...]
    endpoint: str
    model: str
    credential: str = ""
    language: str = ""
    uploader: str = "curl"

    @classmethod
    def from_env(cls) -> "DictationConfig":
        """Create config from environment variables."""
        from .. import constants

        return cls(
            max_duration=constants.MAX_DURATION_SECONDS,
            recorder_command=tuple(constants.RECORDER_COMMAND),
            endpoint=constants.ENDPOINT,
            model=constants.MODEL,
            credential=constants.API_KEY,
            language=constants.LANGUAGE,
            uploader=constants.UPLOADER,
        )


def build_recorder_command(
    template: Sequence[str], max_duration: int, output_path: str
) -> list[str]:
    """Substitute duration and output path into a recorder template.

    Each template element is one argument, so the path never passes
    through a shell.

    Args:
        template: Argument vector with `{duration}` / `{output}` placeholders
        max_duration: Maximum recording length in seconds
        output_path: File the recorder writes to

    Returns:
        Argument vector ready to spawn

    Raises:
        ValueError: If the template is empty or the duration is not positive

    Examples:
        >>> build_recorder_command(["rec", "{output}", "trim", "0", "{duration}"], 30, "/tmp/a b.wav")
        ['rec', '/tmp/a b.wav', 'trim', '0', '30']
    """
    if not template:
        raise ValueError("Recorder command template is empty")
    if max_duration <= 0:
        raise ValueError(f"Max duration must be positive, got {max_duration}")

    return [
        arg.replace(DURATION_PLACEHOLDER, str(int(max_duration))).replace(
            OUTPUT_PLACEHOLDER, str(output_path)
        )
        for arg in template
    ]


def get_auth_headers(credential: str) -> dict[str, str]:
    """Construct bearer authentication headers.

    Args:
        credential: API key for the transcription endpoint

    Returns:
        Headers dict for the upload request
    """
    return {"Authorization": f"Bearer {credential}"}


def build_upload_headers(credential: str) -> bytes:
    """Render the authentication headers curl reads from stdin.

    Keeps the credential off the command line.
    """
    lines = [f"{name}: {value}" for name, value in get_auth_headers(credential).items()]
    return ("\n".join(lines) + "\n").encode("utf-8")


def quote_form_filename(path: str) -> str:
    """Quote a path for a curl form field so `;` and `,` stay part of it."""
    escaped = path.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_upload_command(
    artifact_path: str,
    endpoint: str,
    model: str,
    language: str = "",
    executable: str = "curl",
) -> list[str]:
    """Build the multipart upload command for an audio artifact.

    Headers are read from stdin (`--header @-`); feed them with
    build_upload_headers. Model and language are sent with `--form-string`
    so a leading `@` or `<` is never read as a file.

    Args:
        artifact_path: Recorded audio file
        endpoint: Transcription endpoint URL
        model: Model identifier sent as a form field
        language: Optional language hint sent as a form field
        executable: Uploader executable

    Returns:
        Argument vector ready to spawn
    """
    cmd = [executable, "--silent", "--show-error", "--request", "POST", "--url", endpoint]
    cmd.extend(["--header", "@-"])
    cmd.extend(["--form", f"file=@{quote_form_filename(str(artifact_path))}"])
    cmd.extend(["--form-string", f"model={model}"])
    if language:
        cmd.extend(["--form-string", f"language={language}"])
    return cmd


def _error_message(data: dict) -> str:
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def parse_response(raw_bytes: bytes) -> TranscriptionResponse:
    """Parse the uploader's response body.

    Pure function - never raises.

    Args:
        raw_bytes: Entire stdout of the uploader

    Returns:
        Parsed TranscriptionResponse

    Examples:
        >>> parse_response(b'{"text": "hello world"}').text
        'hello world'

        >>> parse_response(b'{}').is_success
        False
    """
    raw = raw_bytes.decode("utf-8", errors="replace")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return TranscriptionResponse(
            error_message=f"Invalid JSON: {raw[:100]}",
            raw=raw,
        )

    if not isinstance(data, dict):
        return TranscriptionResponse(
            error_message=f"Expected a JSON object, got {type(data).__name__}",
            raw=raw,
        )

    if "error" in data and data["error"]:
        return TranscriptionResponse(
            error_message=f"Service error: {_error_message(data)}",
            raw=raw,
        )

    text = data.get("text")
    if not isinstance(text, str):
        return TranscriptionResponse(
            error_message="Response has no text field",
            raw=raw,
            missing_field=True,
        )

    if not text.strip():
        return TranscriptionResponse(
            error_message="Response text is empty",
            raw=raw,
            missing_field=True,
        )

    return TranscriptionResponse(result=TranscriptionResult(text=text), raw=raw)
