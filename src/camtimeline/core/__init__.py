from __future__ import annotations

from .camera import CameraSink, InMemoryCamera, Reference, StaticReference
from .errors import (
    EmptyTimelineError,
    ErrorKind,
    InvalidStateError,
    OwnershipDeniedError,
    PathIndexError,
    Result,
    TimelineError,
    TimelineIOError,
    TimelineNotFoundError,
)
from .interpolation import (
    POINT_EPSILON,
    InterpolationMode,
    PlaybackMode,
    apply_easing,
    hermite_basis,
    normal_relative_angle,
    shortest_angle_delta,
    smoothstep,
)
from .path import KeyframePath, RotationPath, TranslationPath
from .points import PointKind, RotationPoint, Transition, TranslationPoint
from .registry import NO_ACTIVE_TIMELINE, TimelineInfo, TimelineRegistry, TimelineState
from .settings import EngineSettings
from .timeline import FILE_FORMAT_VERSION, Timeline
from .track import TimelineTrack, rotation_track, translation_track

__all__ = [
    "CameraSink",
    "InMemoryCamera",
    "Reference",
    "StaticReference",
    "ErrorKind",
    "Result",
    "TimelineError",
    "TimelineNotFoundError",
    "OwnershipDeniedError",
    "InvalidStateError",
    "PathIndexError",
    "TimelineIOError",
    "EmptyTimelineError",
    "POINT_EPSILON",
    "InterpolationMode",
    "PlaybackMode",
    "apply_easing",
    "hermite_basis",
    "normal_relative_angle",
    "shortest_angle_delta",
    "smoothstep",
    "KeyframePath",
    "TranslationPath",
    "RotationPath",
    "PointKind",
    "Transition",
    "TranslationPoint",
    "RotationPoint",
    "Timeline",
    "FILE_FORMAT_VERSION",
    "TimelineTrack",
    "translation_track",
    "rotation_track",
    "EngineSettings",
    "TimelineRegistry",
    "TimelineState",
    "TimelineInfo",
    "NO_ACTIVE_TIMELINE",
]
