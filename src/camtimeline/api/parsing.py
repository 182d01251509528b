from __future__ import annotations

from typing import Any

import numpy as np

from ..core.interpolation import InterpolationMode


def parse_bool(value: Any, *, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        raise ValueError(f"Missing {field}")
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid {field}")


def parse_optional_bool(body: dict[str, Any], key: str, default: bool = False) -> bool:
    if body.get(key) is None:
        return default
    return parse_bool(body.get(key), field=key)


def parse_float(value: Any, *, field: str) -> float:
    if value is None:
        raise ValueError(f"Missing {field}")
    if isinstance(value, bool):
        raise ValueError(f"Invalid {field}")
    try:
        v = float(value)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"Invalid {field}") from ex
    if not np.isfinite(v):
        raise ValueError(f"Invalid {field}")
    return v


def parse_index(value: Any, *, field: str = "index") -> int:
    try:
        i = int(value)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"Invalid {field}") from ex
    if i < 0:
        raise ValueError(f"{field} must be >= 0")
    return i


def parse_owner(value: Any) -> str:
    owner = "" if value is None else str(value).strip()
    if not owner:
        raise ValueError("owner is required")
    return owner


def parse_vec3(value: Any, *, field: str) -> tuple[float, float, float]:
    if value is None:
        raise ValueError(f"Missing {field}")
    try:
        arr = np.asarray(value, dtype=np.float64).reshape(3)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"{field} must be a list of 3 numbers") from ex
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{field} must contain finite numeric values")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def parse_point_kind(body: dict[str, Any]) -> str:
    kind = str(body.get("kind", "world")).strip().lower()
    if kind not in {"world", "camera"}:
        raise ValueError("kind must be 'world' or 'camera'")
    return kind


def parse_transition_fields(body: dict[str, Any]) -> tuple[float, InterpolationMode, bool, bool]:
    """Read `time`, `interpolation`, `easeIn` and `easeOut` from a point body."""

    time = parse_float(body.get("time"), field="time")
    raw_mode = body.get("interpolation")
    mode = InterpolationMode.CUBIC_HERMITE if raw_mode is None else InterpolationMode.from_any(raw_mode)
    return (
        time,
        mode,
        parse_optional_bool(body, "easeIn"),
        parse_optional_bool(body, "easeOut"),
    )


def parse_optional_revision(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as ex:
        raise ValueError("Invalid revision") from ex
