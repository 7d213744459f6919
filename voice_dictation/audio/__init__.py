"""Audio artifact helpers."""

from .artifact import (
    ArtifactInfo,
    create_artifact_path,
    delete_artifact,
    inspect_artifact,
    is_artifact_usable,
)

__all__ = [
    "ArtifactInfo",
    "create_artifact_path",
    "delete_artifact",
    "inspect_artifact",
    "is_artifact_usable",
]
