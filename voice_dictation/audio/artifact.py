"""Temporary audio artifact helpers.

The artifact is the single file a session owns: created when recording
starts, checked after the recorder exits, deleted when the session ends.
"""

import logging
import os
import tempfile
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..constants import ARTIFACT_PREFIX, ARTIFACT_SUFFIX

logger = logging.getLogger(__name__)

# Canonical RIFF/WAVE header size; anything at or below it holds no audio
WAV_HEADER_BYTES = 44


@dataclass(frozen=True)
class ArtifactInfo:
    """What is known about a recorded file."""

    path: Path
    size_bytes: int
    sample_rate: int = 0
    channels: int = 0
    n_frames: int = 0


def create_artifact_path(directory: Optional[Path | str] = None) -> Path:
    """Create an empty temporary file for the recorder to write into.

    Returns:
        Path of the new file (owned by the caller)
    """
    fd, name = tempfile.mkstemp(
        prefix=ARTIFACT_PREFIX,
        suffix=ARTIFACT_SUFFIX,
        dir=str(directory) if directory else None,
    )
    os.close(fd)
    return Path(name)


def inspect_artifact(path: Path | str) -> Optional[ArtifactInfo]:
    """Inspect a recorded file.

    WAV files report format and frame count. Other formats (or a WAV whose
    header the recorder never finalized) only report their size.

    Returns:
        ArtifactInfo, or None if the file does not exist
    """
    path = Path(path)
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return None

    try:
        with wave.open(str(path), "rb") as wav:
            return ArtifactInfo(
                path=path,
                size_bytes=size,
                sample_rate=wav.getframerate(),
                channels=wav.getnchannels(),
                n_frames=wav.getnframes(),
            )
    except (wave.Error, EOFError):
        return ArtifactInfo(path=path, size_bytes=size)


def is_artifact_usable(path: Path | str) -> bool:
    """Check that the recorder left audio data in the file."""
    info = inspect_artifact(path)
    if info is None:
        return False
    if info.n_frames > 0:
        return True
    return info.size_bytes > WAV_HEADER_BYTES


def delete_artifact(path: Optional[Path | str]) -> bool:
    """Delete the artifact if it exists.

    Returns:
        True if a file was removed
    """
    if path is None:
        return False
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not delete artifact: {e}", extra={"path": str(path)})
        return False
    logger.debug("Deleted artifact", extra={"path": str(path)})
    return True
