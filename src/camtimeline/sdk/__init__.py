from __future__ import annotations

from .client import DEFAULT_URL, TimelineClient

__all__ = ["TimelineClient", "DEFAULT_URL"]
