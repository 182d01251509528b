from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from camtimeline.core.camera import InMemoryCamera
from camtimeline.core.registry import TimelineRegistry
from camtimeline.core.settings import EngineSettings
from camtimeline.runtime.app import create_app

OWNER = "plugin-a"


@pytest.fixture()
def registry(tmp_path: Path) -> TimelineRegistry:
    return TimelineRegistry(InMemoryCamera(), EngineSettings(data_dir=tmp_path))


@pytest.fixture()
def client(registry: TimelineRegistry) -> TestClient:
    return TestClient(create_app(registry))


def _register(client: TestClient, owner: str = OWNER) -> int:
    res = client.post("/api/timelines", json={"owner": owner, "name": "flyby"})
    assert res.status_code == 200
    return int(res.json()["id"])


def _add_line(client: TestClient, tid: int) -> None:
    for time, x in ((0.0, 0.0), (10.0, 100.0)):
        res = client.post(
            f"/api/timelines/{tid}/translation-points",
            json={"owner": OWNER, "time": time, "position": [x, 0.0, 0.0], "interpolation": "linear"},
        )
        assert res.status_code == 200


def test_health_and_engine_info(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"ok": True}
    info = client.get("/api/engine").json()
    assert info["recordingInterval"] == 1.0
    assert info["activeTimelineId"] is None


def test_register_list_and_describe(client: TestClient) -> None:
    tid = _register(client)
    _register(client, "plugin-b")

    mine = client.get("/api/timelines", params={"owner": OWNER}).json()
    assert [t["id"] for t in mine] == [tid]
    assert len(client.get("/api/timelines").json()) == 2

    info = client.get(f"/api/timelines/{tid}").json()
    assert info["name"] == "flyby"
    assert info["owner"] == OWNER
    assert info["playbackMode"] == "end"
    assert info["translationPoints"] == 0

    assert client.post("/api/timelines", json={"name": "anonymous"}).status_code == 400


def test_points_and_sampling(client: TestClient) -> None:
    tid = _register(client)
    _add_line(client, tid)
    res = client.post(f"/api/timelines/{tid}/rotation-points", json={"owner": OWNER, "time": 0.0, "pitch": 0.1, "yaw": 0.2})
    assert res.json() == {"ok": True, "index": 0}

    point = client.get(f"/api/timelines/{tid}/translation-points/1").json()
    assert point["position"] == [100.0, 0.0, 0.0]
    assert point["interpolation"] == "linear"
    assert point["kind"] == "world"

    sample = client.get(f"/api/timelines/{tid}/sample", params={"time": 5.0}).json()
    assert sample["position"] == pytest.approx([50.0, 0.0, 0.0])
    assert sample["yaw"] == pytest.approx(0.2)

    edited = client.put(
        f"/api/timelines/{tid}/translation-points/0",
        json={"owner": OWNER, "time": 20.0, "position": [1, 2, 3]},
    )
    assert edited.json() == {"ok": True, "index": 1}

    removed = client.delete(f"/api/timelines/{tid}/translation-points/1", params={"owner": OWNER})
    assert removed.json() == {"ok": True, "removed": True}
    missing = client.delete(f"/api/timelines/{tid}/translation-points/9", params={"owner": OWNER})
    assert missing.json() == {"ok": True, "removed": False}


def test_camera_points_use_the_live_camera(client: TestClient, registry: TimelineRegistry) -> None:
    tid = _register(client)
    registry.camera.set_position((4.0, 5.0, 6.0))
    res = client.post(f"/api/timelines/{tid}/translation-points", json={"owner": OWNER, "time": 1.0, "kind": "camera"})
    assert res.status_code == 200
    point = client.get(f"/api/timelines/{tid}/translation-points/0").json()
    assert point["kind"] == "camera"
    assert point["position"] == [4.0, 5.0, 6.0]


def test_failures_map_to_status_codes(client: TestClient) -> None:
    tid = _register(client)

    denied = client.post(
        f"/api/timelines/{tid}/translation-points",
        json={"owner": "intruder", "time": 0.0, "position": [0, 0, 0]},
    )
    assert denied.status_code == 403
    assert denied.json()["detail"]["error"] == "ownership_denied"

    assert client.get("/api/timelines/999").status_code == 404
    assert client.get(f"/api/timelines/{tid}/translation-points/0").status_code == 404

    empty = client.post(f"/api/timelines/{tid}/playback/start", json={"owner": OWNER})
    assert empty.status_code == 409
    assert empty.json()["detail"]["error"] == "empty_timeline"

    bad_position = client.post(
        f"/api/timelines/{tid}/translation-points",
        json={"owner": OWNER, "time": 0.0, "position": [0, 0]},
    )
    assert bad_position.status_code == 400
    bad_time = client.post(
        f"/api/timelines/{tid}/translation-points",
        json={"owner": OWNER, "time": "soon", "position": [0, 0, 0]},
    )
    assert bad_time.status_code == 400
    assert client.post(f"/api/timelines/{tid}/recording/rewind", json={"owner": OWNER}).status_code == 404


def test_stale_revision_is_rejected(client: TestClient) -> None:
    tid = _register(client)
    _add_line(client, tid)
    rev = client.get(f"/api/timelines/{tid}").json()["translationRevision"]

    ok = client.get(f"/api/timelines/{tid}/translation-points/0", params={"revision": rev})
    assert ok.status_code == 200

    _add_line(client, tid)
    stale = client.put(
        f"/api/timelines/{tid}/translation-points/0",
        json={"owner": OWNER, "time": 1.0, "position": [0, 0, 0], "revision": rev},
    )
    assert stale.status_code == 404
    assert stale.json()["detail"]["error"] == "index_out_of_range"


def test_playback_lifecycle(client: TestClient, registry: TimelineRegistry) -> None:
    tid = _register(client)
    _add_line(client, tid)

    started = client.post(f"/api/timelines/{tid}/playback/start", json={"owner": OWNER, "speed": 2})
    assert started.json() == {"ok": True, "duration": 5.0}
    assert client.get("/api/timelines/active").json() == {"id": tid}

    registry.update(1.0)
    assert client.post(f"/api/timelines/{tid}/playback/pause", json={"owner": OWNER}).status_code == 200
    assert client.get(f"/api/timelines/{tid}").json()["isPaused"] is True
    assert client.post(f"/api/timelines/{tid}/playback/resume", json={"owner": OWNER}).status_code == 200
    assert client.post(f"/api/timelines/{tid}/playback/stop", json={"owner": OWNER}).status_code == 200
    assert client.get("/api/timelines/active").json() == {"id": None}

    again = client.post(f"/api/timelines/{tid}/playback/stop", json={"owner": OWNER})
    assert again.status_code == 409


def test_recording_lifecycle(client: TestClient, registry: TimelineRegistry) -> None:
    tid = _register(client)
    assert client.post(f"/api/timelines/{tid}/recording/start", json={"owner": OWNER}).status_code == 409

    registry.camera.enter_capture_mode()
    assert client.post(f"/api/timelines/{tid}/recording/start", json={"owner": OWNER}).status_code == 200
    assert client.get(f"/api/timelines/{tid}").json()["isRecording"] is True
    registry.update(1.0)
    assert client.post(f"/api/timelines/{tid}/recording/stop", json={"owner": OWNER}).status_code == 200
    assert client.get(f"/api/timelines/{tid}").json()["translationPoints"] == 2


def test_settings_patch(client: TestClient) -> None:
    tid = _register(client)
    res = client.patch(
        f"/api/timelines/{tid}/settings",
        json={"owner": OWNER, "playbackMode": "loop", "loopTimeOffset": 1.5, "showMenus": False},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["playbackMode"] == "loop"
    assert body["loopTimeOffset"] == 1.5
    assert body["showMenus"] is False
    assert body["allowUserRotation"] is False

    assert client.patch(f"/api/timelines/{tid}/settings", json={"owner": OWNER}).status_code == 400
    bad = client.patch(f"/api/timelines/{tid}/settings", json={"owner": OWNER, "playbackMode": "loop", "showMenus": "maybe"})
    assert bad.status_code == 400
    assert client.patch(
        f"/api/timelines/{tid}/settings", json={"owner": OWNER, "playbackMode": "bounce"}
    ).status_code == 400


def test_import_and_export(client: TestClient, tmp_path: Path) -> None:
    tid = _register(client)
    _add_line(client, tid)

    exported = client.post(f"/api/timelines/{tid}/export", json={"owner": OWNER, "path": "shots/a.ini"})
    assert exported.status_code == 200
    assert Path(exported.json()["path"]).exists()
    assert (tmp_path / "shots" / "a.ini").read_text(encoding="utf-8").startswith("[General]")

    other = _register(client, "plugin-b")
    imported = client.post(
        f"/api/timelines/{other}/import",
        json={"owner": "plugin-b", "path": "shots/a.ini", "timeOffset": 5},
    )
    assert imported.json() == {"ok": True, "translationPoints": 2, "rotationPoints": 0}
    assert client.get(f"/api/timelines/{other}").json()["duration"] == 15.0

    escape = client.post(f"/api/timelines/{tid}/export", json={"owner": OWNER, "path": "../../etc/x.ini"})
    assert escape.status_code == 400
    assert escape.json()["detail"]["error"] == "io_failure"


def test_unregister(client: TestClient) -> None:
    tid = _register(client)
    assert client.delete(f"/api/timelines/{tid}").status_code == 400
    assert client.delete(f"/api/timelines/{tid}", params={"owner": "intruder"}).status_code == 403
    assert client.delete(f"/api/timelines/{tid}", params={"owner": OWNER}).json() == {"ok": True}
    assert client.get(f"/api/timelines/{tid}").status_code == 404
