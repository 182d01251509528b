from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RECORDING_INTERVAL = 1.0
DEFAULT_TICK_RATE_HZ = 60.0
DEFAULT_DATA_DIR = "timelines"

ENV_RECORDING_INTERVAL = "CAMTIMELINE_RECORDING_INTERVAL"
ENV_TICK_RATE = "CAMTIMELINE_TICK_RATE"
ENV_DATA_DIR = "CAMTIMELINE_DATA_DIR"


def _positive_float(raw: str) -> float:
    value = float(raw)
    if not value > 0.0 or value == float("inf"):
        raise ValueError("must be a positive finite number")
    return value


def _from_env(env: Mapping[str, str], name: str, parse: Callable[[str], T], default: T) -> T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except ValueError as ex:
        logger.warning("Ignoring %s=%r (%s); using %r", name, raw, ex, default)
        return default


@dataclass(frozen=True)
class EngineSettings:
    recording_interval: float = DEFAULT_RECORDING_INTERVAL
    tick_rate_hz: float = DEFAULT_TICK_RATE_HZ
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))

    def __post_init__(self) -> None:
        if not self.recording_interval > 0.0:
            raise ValueError("recording_interval must be > 0")
        if not self.tick_rate_hz > 0.0:
            raise ValueError("tick_rate_hz must be > 0")
        object.__setattr__(self, "data_dir", Path(self.data_dir))

    @property
    def tick_interval(self) -> float:
        return 1.0 / float(self.tick_rate_hz)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "EngineSettings":
        env = os.environ if env is None else env
        return cls(
            recording_interval=_from_env(env, ENV_RECORDING_INTERVAL, _positive_float, DEFAULT_RECORDING_INTERVAL),
            tick_rate_hz=_from_env(env, ENV_TICK_RATE, _positive_float, DEFAULT_TICK_RATE_HZ),
            data_dir=Path(_from_env(env, ENV_DATA_DIR, str, DEFAULT_DATA_DIR)),
        )

    def resolve_data_path(self, relative: str | os.PathLike[str]) -> Path:
        """Resolve a client-supplied path under `data_dir`.

        Raises ValueError for absolute paths or paths escaping the data directory.
        """

        rel = Path(relative)
        if str(relative).strip() == "":
            raise ValueError("path must not be empty")
        if rel.is_absolute():
            raise ValueError(f"path must be relative to the data directory: {relative}")
        base = self.data_dir.resolve()
        target = (base / rel).resolve()
        if target != base and base not in target.parents:
            raise ValueError(f"path escapes the data directory: {relative}")
        if target == base:
            raise ValueError(f"path names the data directory itself: {relative}")
        return target
