"""Transport layer for the recorder and uploader processes."""

from .process import AsyncioProcessSpawner, ProcessExit, ProcessHandle, ProcessSpawner
from .recorder import RecorderLauncher
from .uploader import TransferLauncher

__all__ = [
    "AsyncioProcessSpawner",
    "ProcessExit",
    "ProcessHandle",
    "ProcessSpawner",
    "RecorderLauncher",
    "TransferLauncher",
]
