from __future__ import annotations

from typing import Any

from ..core.points import RotationPoint, Transition, TranslationPoint


def transition_to_dict(t: Transition) -> dict[str, Any]:
    return {
        "time": float(t.time),
        "interpolation": t.mode.name.lower(),
        "easeIn": bool(t.ease_in),
        "easeOut": bool(t.ease_out),
    }


def translation_point_to_dict(point: TranslationPoint) -> dict[str, Any]:
    return {
        "kind": point.kind.name.lower(),
        "position": [float(v) for v in point.value],
        **transition_to_dict(point.transition),
    }


def rotation_point_to_dict(point: RotationPoint) -> dict[str, Any]:
    pitch, yaw = point.value
    return {
        "kind": point.kind.name.lower(),
        "pitch": float(pitch),
        "yaw": float(yaw),
        **transition_to_dict(point.transition),
    }
