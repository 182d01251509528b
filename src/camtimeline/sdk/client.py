from __future__ import annotations

import contextlib
import os
from typing import Any, Iterator

import httpx

from ..core.errors import ErrorKind, error_type_for

DEFAULT_URL = "http://127.0.0.1:8000"


def _default_base_url() -> str:
    return (os.getenv("CAMTIMELINE_URL", "") or DEFAULT_URL).strip().rstrip("/")


class TimelineClient:
    """HTTP client for a running camtimeline server, acting as one owner.

    Engine-side failures are re-raised as the matching `TimelineError` subclass
    (`OwnershipDeniedError`, `InvalidStateError`, ...). Other HTTP errors raise
    `RuntimeError`, as do malformed requests rejected with 400.

    Pass `http_client` to reuse a connection (or a FastAPI `TestClient`); otherwise
    each call opens a short-lived `httpx.Client`.
    """

    def __init__(
        self,
        owner: str,
        base_url: str | None = None,
        *,
        http_client: httpx.Client | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        owner = str(owner).strip()
        if not owner:
            raise ValueError("owner cannot be empty")
        self.owner = owner
        self.base_url = (base_url or _default_base_url()).rstrip("/")
        self.timeout_s = float(timeout_s)
        self._http = http_client

    @contextlib.contextmanager
    def _client(self) -> Iterator[httpx.Client]:
        if self._http is not None:
            yield self._http
            return
        with httpx.Client(base_url=self.base_url, timeout=self.timeout_s) as client:
            yield client

    def _request(
        self,
        method: str,
        path: str,
        *,
        what: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        with self._client() as client:
            res = client.request(method, path, json=json, params=params)
        if res.status_code >= 400:
            detail: Any = None
            with contextlib.suppress(ValueError):
                detail = res.json().get("detail")
            if isinstance(detail, dict) and "error" in detail:
                try:
                    kind = ErrorKind(detail["error"])
                except ValueError:
                    kind = None
                if kind is not None:
                    raise error_type_for(kind)(str(detail.get("message", "")))
            raise RuntimeError(f"Failed to {what}: {res.status_code} {res.text}")
        return res.json()

    def _body(self, **fields: Any) -> dict[str, Any]:
        body: dict[str, Any] = {"owner": self.owner}
        body.update({k: v for k, v in fields.items() if v is not None})
        return body

    # -- lifecycle ---------------------------------------------------------

    def register_timeline(self, name: str = "") -> int:
        data = self._request("POST", "/api/timelines", what="register timeline", json=self._body(name=name))
        return int(data["id"])

    def unregister_timeline(self, timeline_id: int) -> None:
        self._request(
            "DELETE",
            f"/api/timelines/{int(timeline_id)}",
            what="unregister timeline",
            params={"owner": self.owner},
        )

    def list_timelines(self, *, mine_only: bool = False) -> list[dict[str, Any]]:
        params = {"owner": self.owner} if mine_only else None
        return list(self._request("GET", "/api/timelines", what="list timelines", params=params))

    def get_timeline(self, timeline_id: int) -> dict[str, Any]:
        return dict(self._request("GET", f"/api/timelines/{int(timeline_id)}", what="get timeline"))

    def get_active_timeline_id(self) -> int | None:
        data = self._request("GET", "/api/timelines/active", what="get active timeline")
        return None if data.get("id") is None else int(data["id"])

    def clear_timeline(self, timeline_id: int) -> None:
        self._request("POST", f"/api/timelines/{int(timeline_id)}/clear", what="clear timeline", json=self._body())

    # -- points ------------------------------------------------------------

    def add_translation_point(
        self,
        timeline_id: int,
        time: float,
        position: tuple[float, float, float] | None = None,
        *,
        interpolation: str | int | None = None,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> int:
        """Add a keyframe at `position`, or at the live camera when `position` is None."""

        body = self._body(time=float(time), interpolation=interpolation, easeIn=ease_in, easeOut=ease_out)
        if position is None:
            body["kind"] = "camera"
        else:
            body["position"] = [float(v) for v in position]
        data = self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/translation-points",
            what="add translation point",
            json=body,
        )
        return int(data["index"])

    def add_rotation_point(
        self,
        timeline_id: int,
        time: float,
        pitch: float | None = None,
        yaw: float | None = None,
        *,
        interpolation: str | int | None = None,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> int:
        body = self._body(time=float(time), interpolation=interpolation, easeIn=ease_in, easeOut=ease_out)
        if pitch is None and yaw is None:
            body["kind"] = "camera"
        else:
            body["pitch"] = float(pitch or 0.0)
            body["yaw"] = float(yaw or 0.0)
        data = self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/rotation-points",
            what="add rotation point",
            json=body,
        )
        return int(data["index"])

    def edit_translation_point(
        self,
        timeline_id: int,
        index: int,
        time: float,
        position: tuple[float, float, float],
        *,
        interpolation: str | int | None = None,
        ease_in: bool = False,
        ease_out: bool = False,
        revision: int | None = None,
    ) -> int:
        body = self._body(
            time=float(time),
            position=[float(v) for v in position],
            interpolation=interpolation,
            easeIn=ease_in,
            easeOut=ease_out,
            revision=revision,
        )
        data = self._request(
            "PUT",
            f"/api/timelines/{int(timeline_id)}/translation-points/{int(index)}",
            what="edit translation point",
            json=body,
        )
        return int(data["index"])

    def edit_rotation_point(
        self,
        timeline_id: int,
        index: int,
        time: float,
        pitch: float,
        yaw: float,
        *,
        interpolation: str | int | None = None,
        ease_in: bool = False,
        ease_out: bool = False,
        revision: int | None = None,
    ) -> int:
        body = self._body(
            time=float(time),
            pitch=float(pitch),
            yaw=float(yaw),
            interpolation=interpolation,
            easeIn=ease_in,
            easeOut=ease_out,
            revision=revision,
        )
        data = self._request(
            "PUT",
            f"/api/timelines/{int(timeline_id)}/rotation-points/{int(index)}",
            what="edit rotation point",
            json=body,
        )
        return int(data["index"])

    def get_translation_point(self, timeline_id: int, index: int) -> dict[str, Any]:
        return dict(
            self._request(
                "GET",
                f"/api/timelines/{int(timeline_id)}/translation-points/{int(index)}",
                what="get translation point",
            )
        )

    def get_rotation_point(self, timeline_id: int, index: int) -> dict[str, Any]:
        return dict(
            self._request(
                "GET",
                f"/api/timelines/{int(timeline_id)}/rotation-points/{int(index)}",
                what="get rotation point",
            )
        )

    def remove_translation_point(self, timeline_id: int, index: int) -> bool:
        data = self._request(
            "DELETE",
            f"/api/timelines/{int(timeline_id)}/translation-points/{int(index)}",
            what="remove translation point",
            params={"owner": self.owner},
        )
        return bool(data["removed"])

    def remove_rotation_point(self, timeline_id: int, index: int) -> bool:
        data = self._request(
            "DELETE",
            f"/api/timelines/{int(timeline_id)}/rotation-points/{int(index)}",
            what="remove rotation point",
            params={"owner": self.owner},
        )
        return bool(data["removed"])

    # -- recording / playback ----------------------------------------------

    def _action(self, timeline_id: int, group: str, action: str) -> None:
        self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/{group}/{action}",
            what=f"{action} {group}",
            json=self._body(),
        )

    def start_recording(self, timeline_id: int) -> None:
        self._action(timeline_id, "recording", "start")

    def stop_recording(self, timeline_id: int) -> None:
        self._action(timeline_id, "recording", "stop")

    def pause_recording(self, timeline_id: int) -> None:
        self._action(timeline_id, "recording", "pause")

    def resume_recording(self, timeline_id: int) -> None:
        self._action(timeline_id, "recording", "resume")

    def start_playback(
        self,
        timeline_id: int,
        *,
        speed: float | None = None,
        duration: float | None = None,
        global_ease_in: bool = False,
        global_ease_out: bool = False,
    ) -> float:
        """Start playback and return its real-time duration in seconds."""

        body = self._body(speed=speed, duration=duration, globalEaseIn=global_ease_in, globalEaseOut=global_ease_out)
        data = self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/playback/start",
            what="start playback",
            json=body,
        )
        return float(data["duration"])

    def stop_playback(self, timeline_id: int) -> None:
        self._action(timeline_id, "playback", "stop")

    def pause_playback(self, timeline_id: int) -> None:
        self._action(timeline_id, "playback", "pause")

    def resume_playback(self, timeline_id: int) -> None:
        self._action(timeline_id, "playback", "resume")

    def update_settings(
        self,
        timeline_id: int,
        *,
        playback_mode: str | int | None = None,
        loop_time_offset: float | None = None,
        allow_user_rotation: bool | None = None,
        show_menus: bool | None = None,
    ) -> dict[str, Any]:
        body = self._body(
            playbackMode=playback_mode,
            loopTimeOffset=loop_time_offset,
            allowUserRotation=allow_user_rotation,
            showMenus=show_menus,
        )
        return dict(
            self._request("PATCH", f"/api/timelines/{int(timeline_id)}/settings", what="update settings", json=body)
        )

    def sample(self, timeline_id: int, time: float) -> dict[str, Any]:
        return dict(
            self._request(
                "GET",
                f"/api/timelines/{int(timeline_id)}/sample",
                what="sample timeline",
                params={"time": float(time)},
            )
        )

    # -- files -------------------------------------------------------------

    def import_timeline(
        self,
        timeline_id: int,
        path: str,
        *,
        time_offset: float = 0.0,
        append: bool = False,
    ) -> tuple[int, int]:
        data = self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/import",
            what="import timeline",
            json=self._body(path=str(path), timeOffset=float(time_offset), append=append),
        )
        return int(data["translationPoints"]), int(data["rotationPoints"])

    def export_timeline(self, timeline_id: int, path: str, *, use_degrees: bool = True) -> str:
        data = self._request(
            "POST",
            f"/api/timelines/{int(timeline_id)}/export",
            what="export timeline",
            json=self._body(path=str(path), useDegrees=use_degrees),
        )
        return str(data["path"])


__all__ = ["TimelineClient", "DEFAULT_URL"]
