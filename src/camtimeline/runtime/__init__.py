from __future__ import annotations

from .app import create_app, create_registry
from .driver import TickDriver
from .server import TimelineServer, run

__all__ = ["create_app", "create_registry", "TickDriver", "TimelineServer", "run"]
