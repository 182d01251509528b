from __future__ import annotations

from fastapi import FastAPI

from ..api import create_api_app
from ..core.camera import CameraSink, InMemoryCamera
from ..core.registry import TimelineRegistry
from ..core.settings import EngineSettings


def create_registry(camera: CameraSink | None = None, settings: EngineSettings | None = None) -> TimelineRegistry:
    """Build the one registry a process hosts; headless setups get an in-memory camera."""

    return TimelineRegistry(camera if camera is not None else InMemoryCamera(), settings or EngineSettings.from_env())


def create_app(registry: TimelineRegistry | None = None) -> FastAPI:
    """Create the HTTP app around `registry` (a fresh headless one when omitted)."""

    return create_api_app(registry if registry is not None else create_registry())
