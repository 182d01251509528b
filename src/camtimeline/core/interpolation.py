from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

POINT_EPSILON = 1e-4


class InterpolationMode(IntEnum):
    NONE = 0
    LINEAR = 1
    CUBIC_HERMITE = 2

    @classmethod
    def from_any(cls, value: Any) -> "InterpolationMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            v = value.strip().lower().replace("-", "_")
            aliases = {
                "none": cls.NONE,
                "step": cls.NONE,
                "linear": cls.LINEAR,
                "cubic_hermite": cls.CUBIC_HERMITE,
                "cubic": cls.CUBIC_HERMITE,
                "catmull_rom": cls.CUBIC_HERMITE,
            }
            if v in aliases:
                return aliases[v]
            try:
                value = int(v)
            except ValueError:
                logger.warning("Invalid interpolation mode %r, defaulting to NONE", value)
                return cls.NONE
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            logger.warning("Invalid interpolation mode %r, defaulting to NONE", value)
            return cls.NONE


class PlaybackMode(IntEnum):
    END = 0
    LOOP = 1
    WAIT = 2

    @classmethod
    def from_any(cls, value: Any) -> "PlaybackMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() in {"end", "loop", "wait"}:
            return cls[value.strip().upper()]
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"Unsupported playback mode: {value!r}") from None


def normal_relative_angle(angle: float | np.ndarray) -> float | np.ndarray:
    """Map an angle (radians) into (-pi, pi]."""

    wrapped = np.pi - np.mod(np.pi - np.asarray(angle, dtype=np.float64), 2.0 * np.pi)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def shortest_angle_delta(from_angle: np.ndarray, to_angle: np.ndarray) -> np.ndarray:
    return np.asarray(normal_relative_angle(np.asarray(to_angle) - np.asarray(from_angle)), dtype=np.float64)


def smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


def apply_easing(t: float, ease_in: bool, ease_out: bool) -> float:
    """Ease linear progress `t` on the flagged end(s).

    Both flags give the symmetric smoothstep S-curve. A single flag uses the matching
    half of smoothstep stretched over [0, 1], so the opposite end keeps a non-zero
    velocity. No flags is the identity.
    """

    t = float(np.clip(t, 0.0, 1.0))
    if ease_in and ease_out:
        return smoothstep(t)
    if ease_in:
        return 2.0 * smoothstep(0.5 * t)
    if ease_out:
        return 2.0 * smoothstep(0.5 + 0.5 * t) - 1.0
    return t


def hermite_basis(t: float) -> tuple[float, float, float, float]:
    t2 = t * t
    t3 = t2 * t
    h00 = 2.0 * t3 - 3.0 * t2 + 1.0
    h10 = t3 - 2.0 * t2 + t
    h01 = -2.0 * t3 + 3.0 * t2
    h11 = t3 - t2
    return h00, h10, h01, h11
