from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from .. import __version__
from ..core.registry import TimelineRegistry
from .routes import STATUS_BY_KIND, mount_timelines_api


def create_api_app(registry: TimelineRegistry) -> FastAPI:
    app = FastAPI(title="camtimeline", version=__version__)
    app.state.registry = registry

    mount_timelines_api(app, registry)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/engine")
    def engine_info() -> dict[str, Any]:
        s = registry.settings
        return {
            "version": __version__,
            "recordingInterval": float(s.recording_interval),
            "tickRateHz": float(s.tick_rate_hz),
            "activeTimelineId": registry.get_active_timeline_id() or None,
        }

    return app


__all__ = ["create_api_app", "mount_timelines_api", "STATUS_BY_KIND"]
