from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, ClassVar, Mapping, TypeVar

import numpy as np

from .camera import Angles, CameraSink, Reference, Vec3, as_angles, as_vec3
from .interpolation import POINT_EPSILON, InterpolationMode, normal_relative_angle, shortest_angle_delta

logger = logging.getLogger(__name__)

P = TypeVar("P", bound="KeyframePoint")


class PointKind(IntEnum):
    WORLD = 0
    REFERENCE = 1
    CAMERA = 2

    @classmethod
    def from_any(cls, value: Any) -> "PointKind":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() in {"world", "reference", "camera"}:
            return cls[value.strip().upper()]
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            logger.warning("Invalid point kind %r, defaulting to WORLD", value)
            return cls.WORLD


@dataclass(frozen=True)
class Transition:
    """How the approach *to* a keyframe is interpolated."""

    time: float = 0.0
    mode: InterpolationMode = InterpolationMode.CUBIC_HERMITE
    ease_in: bool = False
    ease_out: bool = False

    def with_time(self, time: float) -> "Transition":
        return replace(self, time=float(time))


def _parse_flag(data: Mapping[str, str], key: str, default: bool = True) -> bool:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    return int(float(raw)) != 0


def _parse_float(data: Mapping[str, str], key: str, default: float = 0.0) -> float:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    value = float(raw)
    if not np.isfinite(value):
        raise ValueError(f"{key} must be finite")
    return value


def _transition_from_section(data: Mapping[str, str], time_offset: float) -> Transition:
    mode_raw = data.get("InterpolationMode")
    mode = InterpolationMode.CUBIC_HERMITE if mode_raw is None else InterpolationMode.from_any(mode_raw)
    return Transition(
        time=_parse_float(data, "Time") + float(time_offset),
        mode=mode,
        ease_in=_parse_flag(data, "EaseIn"),
        ease_out=_parse_flag(data, "EaseOut"),
    )


def _transition_to_section(transition: Transition) -> dict[str, str]:
    return {
        "Time": repr(float(transition.time)),
        "EaseIn": "1" if transition.ease_in else "0",
        "EaseOut": "1" if transition.ease_out else "0",
        "InterpolationMode": str(int(transition.mode)),
    }


@dataclass(frozen=True)
class KeyframePoint:
    """Shared behaviour of the two keyframe value types.

    Points are immutable. Arithmetic returns new WORLD points carrying the left-hand
    operand's transition, which is all the spline code needs.
    """

    SECTION_NAME: ClassVar[str] = ""

    transition: Transition = field(default_factory=Transition)

    @property
    def time(self) -> float:
        return float(self.transition.time)

    def components(self) -> np.ndarray:
        raise NotImplementedError

    def with_components(self: P, values: np.ndarray) -> P:
        raise NotImplementedError

    def with_transition(self: P, transition: Transition) -> P:
        return replace(self, transition=transition)

    def with_time(self: P, time: float) -> P:
        return replace(self, transition=self.transition.with_time(time))

    def __add__(self: P, other: P) -> P:
        return self.with_components(self.components() + other.components())

    def __sub__(self: P, other: P) -> P:
        return self.with_components(self.components() - other.components())

    def __mul__(self: P, scalar: float) -> P:
        return self.with_components(self.components() * float(scalar))

    __rmul__ = __mul__

    def is_nearly_equal(self, other: "KeyframePoint", epsilon: float = POINT_EPSILON) -> bool:
        if type(other) is not type(self):
            return False
        return bool(np.all(np.abs(self.components() - other.components()) < epsilon))

    def wrap(self: P) -> P:
        return self

    def unwrap(self: P, reference: P) -> P:
        return self

    def resolve(self: P, camera: CameraSink | None) -> P:
        return self

    @classmethod
    def zero(cls: type[P]) -> P:
        raise NotImplementedError

    @classmethod
    def from_section(cls: type[P], data: Mapping[str, str], *, time_offset: float = 0.0, conversion: float = 1.0) -> P:
        raise NotImplementedError

    def to_section(self, *, conversion: float = 1.0) -> dict[str, str]:
        raise NotImplementedError


@dataclass(frozen=True)
class TranslationPoint(KeyframePoint):
    SECTION_NAME: ClassVar[str] = "TranslatePoint"

    value: Vec3 = (0.0, 0.0, 0.0)
    kind: PointKind = PointKind.WORLD
    reference: Reference | None = field(default=None, compare=False)
    offset: Vec3 = (0.0, 0.0, 0.0)
    # Offset expressed in the reference's heading frame (x right, y forward, z up).
    offset_relative: bool = False

    def components(self) -> np.ndarray:
        return np.asarray(self.value, dtype=np.float64)

    def with_components(self, values: np.ndarray) -> "TranslationPoint":
        return TranslationPoint(transition=self.transition, value=as_vec3(values))

    def resolve(self, camera: CameraSink | None) -> "TranslationPoint":
        if self.kind == PointKind.CAMERA:
            if camera is None:
                return self
            return replace(self, value=as_vec3(camera.get_position()))
        if self.kind == PointKind.REFERENCE:
            if self.reference is None:
                return self
            base = np.asarray(self.reference.get_position(), dtype=np.float64).reshape(3)
            off = np.asarray(self.offset, dtype=np.float64).reshape(3)
            if self.offset_relative:
                yaw = float(self.reference.get_orientation()[1])
                c, s = float(np.cos(yaw)), float(np.sin(yaw))
                off = np.array([off[0] * c + off[1] * s, -off[0] * s + off[1] * c, off[2]], dtype=np.float64)
            return replace(self, value=as_vec3(base + off))
        return self

    @classmethod
    def zero(cls) -> "TranslationPoint":
        return cls()

    @classmethod
    def from_section(
        cls,
        data: Mapping[str, str],
        *,
        time_offset: float = 0.0,
        conversion: float = 1.0,
    ) -> "TranslationPoint":
        position = (
            _parse_float(data, "PositionX"),
            _parse_float(data, "PositionY"),
            _parse_float(data, "PositionZ"),
        )
        return cls(transition=_transition_from_section(data, time_offset), value=position)

    def to_section(self, *, conversion: float = 1.0) -> dict[str, str]:
        x, y, z = self.value
        out = {
            "PositionX": repr(float(x)),
            "PositionY": repr(float(y)),
            "PositionZ": repr(float(z)),
        }
        out.update(_transition_to_section(self.transition))
        return out


@dataclass(frozen=True)
class RotationPoint(KeyframePoint):
    """Pitch/yaw keyframe in radians.

    Arithmetic works on raw components so spline maths can run on unwrapped angles;
    `wrap` brings a result back into (-pi, pi].
    """

    SECTION_NAME: ClassVar[str] = "RotatePoint"

    value: Angles = (0.0, 0.0)
    kind: PointKind = PointKind.WORLD
    reference: Reference | None = field(default=None, compare=False)
    offset: Angles = (0.0, 0.0)

    def components(self) -> np.ndarray:
        return np.asarray(self.value, dtype=np.float64)

    def with_components(self, values: np.ndarray) -> "RotationPoint":
        return RotationPoint(transition=self.transition, value=as_angles(values))

    def wrap(self) -> "RotationPoint":
        wrapped = normal_relative_angle(self.components())
        return replace(self, value=as_angles(wrapped))

    def unwrap(self, reference: "RotationPoint") -> "RotationPoint":
        ref = reference.components()
        delta = shortest_angle_delta(ref, self.components())
        return replace(self, value=as_angles(ref + delta))

    def resolve(self, camera: CameraSink | None) -> "RotationPoint":
        if self.kind == PointKind.CAMERA:
            if camera is None:
                return self
            return replace(self, value=as_angles(camera.get_orientation()))
        if self.kind == PointKind.REFERENCE:
            if self.reference is None:
                return self
            base = np.asarray(self.reference.get_orientation(), dtype=np.float64).reshape(2)
            angles = normal_relative_angle(base + np.asarray(self.offset, dtype=np.float64))
            return replace(self, value=as_angles(angles))
        return self

    @classmethod
    def zero(cls) -> "RotationPoint":
        return cls()

    @classmethod
    def from_section(
        cls,
        data: Mapping[str, str],
        *,
        time_offset: float = 0.0,
        conversion: float = 1.0,
    ) -> "RotationPoint":
        angles = (
            _parse_float(data, "Pitch") * float(conversion),
            _parse_float(data, "Yaw") * float(conversion),
        )
        return cls(transition=_transition_from_section(data, time_offset), value=angles)

    def to_section(self, *, conversion: float = 1.0) -> dict[str, str]:
        pitch, yaw = self.value
        out = {
            "Pitch": repr(float(pitch) * float(conversion)),
            "Yaw": repr(float(yaw) * float(conversion)),
        }
        out.update(_transition_to_section(self.transition))
        return out
