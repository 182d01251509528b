from __future__ import annotations

__version__ = "0.1.0"

from .core.camera import CameraSink, InMemoryCamera, StaticReference
from .core.errors import ErrorKind, Result, TimelineError
from .core.interpolation import InterpolationMode, PlaybackMode
from .core.registry import TimelineRegistry
from .core.settings import EngineSettings
from .runtime.server import TimelineServer, run
from .sdk.client import TimelineClient

__all__ = [
    "__version__",
    "run",
    "TimelineServer",
    "TimelineClient",
    "TimelineRegistry",
    "EngineSettings",
    "CameraSink",
    "InMemoryCamera",
    "StaticReference",
    "InterpolationMode",
    "PlaybackMode",
    "ErrorKind",
    "Result",
    "TimelineError",
]
