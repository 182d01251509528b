from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException

from ..core.errors import ErrorKind, Result
from ..core.interpolation import PlaybackMode
from ..core.registry import TimelineRegistry
from .parsing import (
    parse_bool,
    parse_float,
    parse_index,
    parse_optional_bool,
    parse_optional_revision,
    parse_owner,
    parse_point_kind,
    parse_transition_fields,
    parse_vec3,
)
from .serializers import rotation_point_to_dict, translation_point_to_dict

T = TypeVar("T")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OWNERSHIP_DENIED: 403,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.EMPTY_TIMELINE: 409,
    ErrorKind.INDEX_OUT_OF_RANGE: 404,
    ErrorKind.IO_FAILURE: 400,
}


def _unwrap(result: Result[T]) -> T:
    if not result.ok:
        assert result.error is not None
        raise HTTPException(
            status_code=STATUS_BY_KIND.get(result.error, 400),
            detail={"error": result.error.value, "message": result.message},
        )
    return result.value  # type: ignore[return-value]


def _call(fn: Callable[[], Result[T]]) -> T:
    """Run a registry call, mapping malformed input to 400 and failures by kind."""

    try:
        result = fn()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _unwrap(result)


def mount_timelines_api(app: FastAPI, registry: TimelineRegistry) -> None:
    """Mount the client-plugin endpoints under /api/timelines."""

    @app.get("/api/timelines")
    def list_timelines(owner: str | None = None) -> list[dict[str, Any]]:
        infos = registry.list_timelines(owner=owner or None)
        infos.sort(key=lambda i: i.id)
        return [i.to_dict() for i in infos]

    @app.post("/api/timelines")
    def register_timeline(body: dict) -> dict[str, Any]:
        name = str(body.get("name") or "")
        timeline_id = _call(lambda: registry.register_timeline(parse_owner(body.get("owner")), name))
        return {"ok": True, "id": int(timeline_id)}

    @app.get("/api/timelines/active")
    def get_active_timeline() -> dict[str, Any]:
        active = registry.get_active_timeline_id()
        return {"id": int(active) if active else None}

    @app.get("/api/timelines/{timeline_id}")
    def get_timeline(timeline_id: int, owner: str | None = None) -> dict[str, Any]:
        return _call(lambda: registry.get_timeline_info(timeline_id, owner=owner or None)).to_dict()

    @app.delete("/api/timelines/{timeline_id}")
    def unregister_timeline(timeline_id: int, owner: str | None = None) -> dict[str, bool]:
        _call(lambda: registry.unregister_timeline(timeline_id, parse_owner(owner)))
        return {"ok": True}

    @app.post("/api/timelines/{timeline_id}/clear")
    def clear_timeline(timeline_id: int, body: dict) -> dict[str, bool]:
        _call(lambda: registry.clear_timeline(timeline_id, parse_owner(body.get("owner"))))
        return {"ok": True}

    # -- points --------------------------------------------------------------

    @app.post("/api/timelines/{timeline_id}/translation-points")
    def add_translation_point(timeline_id: int, body: dict) -> dict[str, Any]:
        def op() -> Result[int]:
            owner = parse_owner(body.get("owner"))
            time, mode, ease_in, ease_out = parse_transition_fields(body)
            if parse_point_kind(body) == "camera":
                return registry.add_translation_point_at_camera(
                    timeline_id, owner, time, mode=mode, ease_in=ease_in, ease_out=ease_out
                )
            position = parse_vec3(body.get("position"), field="position")
            return registry.add_translation_point(
                timeline_id, owner, time, position, mode=mode, ease_in=ease_in, ease_out=ease_out
            )

        return {"ok": True, "index": int(_call(op))}

    @app.get("/api/timelines/{timeline_id}/translation-points/{index}")
    def get_translation_point(
        timeline_id: int,
        index: int,
        owner: str | None = None,
        revision: int | None = None,
    ) -> dict[str, Any]:
        point = _call(
            lambda: registry.get_translation_point(
                timeline_id, parse_index(index), owner=owner or None, expected_revision=revision
            )
        )
        return {"index": int(index), **translation_point_to_dict(point)}

    @app.put("/api/timelines/{timeline_id}/translation-points/{index}")
    def edit_translation_point(timeline_id: int, index: int, body: dict) -> dict[str, Any]:
        def op() -> Result[int]:
            owner = parse_owner(body.get("owner"))
            time, mode, ease_in, ease_out = parse_transition_fields(body)
            position = parse_vec3(body.get("position"), field="position")
            return registry.edit_translation_point(
                timeline_id,
                owner,
                parse_index(index),
                time,
                position,
                mode=mode,
                ease_in=ease_in,
                ease_out=ease_out,
                expected_revision=parse_optional_revision(body.get("revision")),
            )

        return {"ok": True, "index": int(_call(op))}

    @app.delete("/api/timelines/{timeline_id}/translation-points/{index}")
    def remove_translation_point(timeline_id: int, index: int, owner: str | None = None) -> dict[str, bool]:
        removed = _call(lambda: registry.remove_translation_point(timeline_id, parse_owner(owner), parse_index(index)))
        return {"ok": True, "removed": bool(removed)}

    @app.post("/api/timelines/{timeline_id}/rotation-points")
    def add_rotation_point(timeline_id: int, body: dict) -> dict[str, Any]:
        def op() -> Result[int]:
            owner = parse_owner(body.get("owner"))
            time, mode, ease_in, ease_out = parse_transition_fields(body)
            if parse_point_kind(body) == "camera":
                return registry.add_rotation_point_at_camera(
                    timeline_id, owner, time, mode=mode, ease_in=ease_in, ease_out=ease_out
                )
            pitch = parse_float(body.get("pitch"), field="pitch")
            yaw = parse_float(body.get("yaw"), field="yaw")
            return registry.add_rotation_point(
                timeline_id, owner, time, pitch, yaw, mode=mode, ease_in=ease_in, ease_out=ease_out
            )

        return {"ok": True, "index": int(_call(op))}

    @app.get("/api/timelines/{timeline_id}/rotation-points/{index}")
    def get_rotation_point(
        timeline_id: int,
        index: int,
        owner: str | None = None,
        revision: int | None = None,
    ) -> dict[str, Any]:
        point = _call(
            lambda: registry.get_rotation_point(
                timeline_id, parse_index(index), owner=owner or None, expected_revision=revision
            )
        )
        return {"index": int(index), **rotation_point_to_dict(point)}

    @app.put("/api/timelines/{timeline_id}/rotation-points/{index}")
    def edit_rotation_point(timeline_id: int, index: int, body: dict) -> dict[str, Any]:
        def op() -> Result[int]:
            owner = parse_owner(body.get("owner"))
            time, mode, ease_in, ease_out = parse_transition_fields(body)
            return registry.edit_rotation_point(
                timeline_id,
                owner,
                parse_index(index),
                time,
                parse_float(body.get("pitch"), field="pitch"),
                parse_float(body.get("yaw"), field="yaw"),
                mode=mode,
                ease_in=ease_in,
                ease_out=ease_out,
                expected_revision=parse_optional_revision(body.get("revision")),
            )

        return {"ok": True, "index": int(_call(op))}

    @app.delete("/api/timelines/{timeline_id}/rotation-points/{index}")
    def remove_rotation_point(timeline_id: int, index: int, owner: str | None = None) -> dict[str, bool]:
        removed = _call(lambda: registry.remove_rotation_point(timeline_id, parse_owner(owner), parse_index(index)))
        return {"ok": True, "removed": bool(removed)}

    # -- recording / playback -------------------------------------------------

    @app.post("/api/timelines/{timeline_id}/recording/{action}")
    def recording_action(timeline_id: int, action: str, body: dict) -> dict[str, bool]:
        actions = {
            "start": registry.start_recording,
            "stop": registry.stop_recording,
            "pause": registry.pause_recording,
            "resume": registry.resume_recording,
        }
        fn = actions.get(action)
        if fn is None:
            raise HTTPException(status_code=404, detail=f"Unknown recording action: {action}")
        _call(lambda: fn(timeline_id, parse_owner(body.get("owner"))))
        return {"ok": True}

    @app.post("/api/timelines/{timeline_id}/playback/start")
    def start_playback(timeline_id: int, body: dict) -> dict[str, Any]:
        def op() -> Result[float]:
            owner = parse_owner(body.get("owner"))
            speed = 1.0 if body.get("speed") is None else parse_float(body.get("speed"), field="speed")
            duration = None if body.get("duration") is None else parse_float(body.get("duration"), field="duration")
            return registry.start_playback(
                timeline_id,
                owner,
                speed=speed,
                duration=duration,
                global_ease_in=parse_optional_bool(body, "globalEaseIn"),
                global_ease_out=parse_optional_bool(body, "globalEaseOut"),
            )

        return {"ok": True, "duration": float(_call(op))}

    @app.post("/api/timelines/{timeline_id}/playback/{action}")
    def playback_action(timeline_id: int, action: str, body: dict) -> dict[str, bool]:
        actions = {
            "stop": registry.stop_playback,
            "pause": registry.pause_playback,
            "resume": registry.resume_playback,
        }
        fn = actions.get(action)
        if fn is None:
            raise HTTPException(status_code=404, detail=f"Unknown playback action: {action}")
        _call(lambda: fn(timeline_id, parse_owner(body.get("owner"))))
        return {"ok": True}

    @app.patch("/api/timelines/{timeline_id}/settings")
    def update_timeline_settings(timeline_id: int, body: dict) -> dict[str, Any]:
        # Supported: playbackMode, loopTimeOffset, allowUserRotation, showMenus
        keys = ("playbackMode", "loopTimeOffset", "allowUserRotation", "showMenus")
        if not any(k in body for k in keys):
            raise HTTPException(status_code=400, detail=f"Provide at least one of: {', '.join(keys)}")

        # Parse everything up front so a bad field leaves the timeline untouched.
        def parse() -> tuple[str, list[Callable[[], Result[None]]]]:
            owner = parse_owner(body.get("owner"))
            ops: list[Callable[[], Result[None]]] = []
            if "playbackMode" in body:
                mode = PlaybackMode.from_any(body.get("playbackMode"))
                ops.append(lambda: registry.set_playback_mode(timeline_id, owner, mode))
            if "loopTimeOffset" in body:
                offset = parse_float(body.get("loopTimeOffset"), field="loopTimeOffset")
                ops.append(lambda: registry.set_loop_time_offset(timeline_id, owner, offset))
            if "allowUserRotation" in body:
                allow = parse_bool(body.get("allowUserRotation"), field="allowUserRotation")
                ops.append(lambda: registry.allow_user_rotation(timeline_id, owner, allow))
            if "showMenus" in body:
                visible = parse_bool(body.get("showMenus"), field="showMenus")
                ops.append(lambda: registry.set_show_menus(timeline_id, owner, visible))
            return owner, ops

        owner, ops = _call_value(parse)
        for op in ops:
            _call(op)
        return {"ok": True, **_call(lambda: registry.get_timeline_info(timeline_id, owner=owner)).to_dict()}

    @app.get("/api/timelines/{timeline_id}/sample")
    def sample_timeline(timeline_id: int, time: float, owner: str | None = None) -> dict[str, Any]:
        t = _call_value(lambda: parse_float(time, field="time"))
        position = _call(lambda: registry.get_translation(timeline_id, t, owner=owner or None))
        pitch, yaw = _call(lambda: registry.get_rotation(timeline_id, t, owner=owner or None))
        return {"time": t, "position": list(position), "pitch": float(pitch), "yaw": float(yaw)}

    # -- files ------------------------------------------------------------------

    @app.post("/api/timelines/{timeline_id}/import")
    def import_timeline(timeline_id: int, body: dict) -> dict[str, Any]:
        def op() -> Result[tuple[int, int]]:
            offset = 0.0 if body.get("timeOffset") is None else parse_float(body.get("timeOffset"), field="timeOffset")
            return registry.import_timeline(
                timeline_id,
                parse_owner(body.get("owner")),
                str(body.get("path") or ""),
                time_offset=offset,
                append=parse_optional_bool(body, "append"),
            )

        translations, rotations = _call(op)
        return {"ok": True, "translationPoints": int(translations), "rotationPoints": int(rotations)}

    @app.post("/api/timelines/{timeline_id}/export")
    def export_timeline(timeline_id: int, body: dict) -> dict[str, Any]:
        def op() -> Result[Path]:
            return registry.export_timeline(
                timeline_id,
                parse_owner(body.get("owner")),
                str(body.get("path") or ""),
                use_degrees=parse_optional_bool(body, "useDegrees", default=True),
            )

        path = _call(op)
        return {"ok": True, "path": str(path)}


def _call_value(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
