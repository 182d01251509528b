from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

Vec3 = tuple[float, float, float]
Angles = tuple[float, float]


class CameraSink(Protocol):
    """Host camera the engine samples while recording and drives while playing.

    `IsInCaptureMode` is the free-camera state: recording requires it, playback
    enters it on start and leaves it on stop.
    """

    def get_position(self) -> Vec3: ...
    def get_orientation(self) -> Angles: ...
    def set_position(self, position: Vec3) -> None: ...
    def set_orientation(self, pitch: float, yaw: float) -> None: ...
    def is_in_capture_mode(self) -> bool: ...
    def enter_capture_mode(self) -> None: ...
    def exit_capture_mode(self) -> None: ...
    def is_hud_visible(self) -> bool: ...
    def set_hud_visible(self, visible: bool) -> None: ...


@runtime_checkable
class Reference(Protocol):
    """External scene entity a keyframe can be anchored to."""

    def get_position(self) -> Vec3: ...
    def get_orientation(self) -> Angles: ...


def as_vec3(value: Vec3 | list[float] | np.ndarray) -> Vec3:
    arr = np.asarray(value, dtype=np.float64).reshape(3)
    if not np.all(np.isfinite(arr)):
        raise ValueError("position must contain finite numeric values")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def as_angles(value: Angles | list[float] | np.ndarray) -> Angles:
    arr = np.asarray(value, dtype=np.float64).reshape(2)
    if not np.all(np.isfinite(arr)):
        raise ValueError("rotation must contain finite numeric values")
    return (float(arr[0]), float(arr[1]))


@dataclass(frozen=True)
class StaticReference:
    """Fixed reference pose; handy for tests and scripted scenes."""

    position: Vec3 = (0.0, 0.0, 0.0)
    orientation: Angles = (0.0, 0.0)

    def get_position(self) -> Vec3:
        return self.position

    def get_orientation(self) -> Angles:
        return self.orientation


class InMemoryCamera:
    """Thread-safe camera state with no host attached.

    Used by the headless server and by the test-suite.
    """

    def __init__(
        self,
        position: Vec3 = (0.0, 0.0, 0.0),
        orientation: Angles = (0.0, 0.0),
        *,
        capture_mode: bool = False,
        hud_visible: bool = True,
    ) -> None:
        self._lock = threading.RLock()
        self._position = as_vec3(position)
        self._orientation = as_angles(orientation)
        self._capture_mode = bool(capture_mode)
        self._hud_visible = bool(hud_visible)

    def get_position(self) -> Vec3:
        with self._lock:
            return self._position

    def get_orientation(self) -> Angles:
        with self._lock:
            return self._orientation

    def set_position(self, position: Vec3) -> None:
        with self._lock:
            self._position = as_vec3(position)

    def set_orientation(self, pitch: float, yaw: float) -> None:
        with self._lock:
            self._orientation = as_angles((pitch, yaw))

    def is_in_capture_mode(self) -> bool:
        with self._lock:
            return self._capture_mode

    def enter_capture_mode(self) -> None:
        with self._lock:
            self._capture_mode = True

    def exit_capture_mode(self) -> None:
        with self._lock:
            self._capture_mode = False

    def is_hud_visible(self) -> bool:
        with self._lock:
            return self._hud_visible

    def set_hud_visible(self, visible: bool) -> None:
        with self._lock:
            self._hud_visible = bool(visible)
