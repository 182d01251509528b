from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from camtimeline.core.camera import InMemoryCamera
from camtimeline.core.errors import EmptyTimelineError, OwnershipDeniedError, PathIndexError, TimelineNotFoundError
from camtimeline.core.registry import TimelineRegistry
from camtimeline.core.settings import EngineSettings
from camtimeline.runtime.app import create_app
from camtimeline.sdk import TimelineClient


def _clients(tmp_path) -> tuple[TimelineRegistry, TimelineClient, TimelineClient]:
    registry = TimelineRegistry(InMemoryCamera(), EngineSettings(data_dir=tmp_path))
    http = TestClient(create_app(registry))
    return registry, TimelineClient("plugin-a", http_client=http), TimelineClient("plugin-b", http_client=http)


def test_authoring_and_playback_through_the_client(tmp_path) -> None:
    registry, a, _ = _clients(tmp_path)
    tid = a.register_timeline("intro")

    assert a.add_translation_point(tid, 0.0, (0.0, 0.0, 0.0), interpolation="linear") == 0
    assert a.add_translation_point(tid, 10.0, (100.0, 0.0, 0.0), interpolation="linear") == 1
    assert a.add_rotation_point(tid, 0.0, 0.0, 0.5) == 0
    assert a.get_translation_point(tid, 1)["position"] == [100.0, 0.0, 0.0]
    assert a.sample(tid, 2.5)["position"] == pytest.approx([25.0, 0.0, 0.0])

    assert a.start_playback(tid, duration=5.0) == pytest.approx(5.0)
    assert a.get_active_timeline_id() == tid
    registry.update(2.5)
    assert registry.camera.get_position() == pytest.approx((50.0, 0.0, 0.0))
    a.pause_playback(tid)
    assert a.get_timeline(tid)["isPaused"] is True
    a.resume_playback(tid)
    a.stop_playback(tid)
    assert a.get_active_timeline_id() is None

    info = a.update_settings(tid, playback_mode="wait", allow_user_rotation=True)
    assert info["playbackMode"] == "wait"
    assert info["allowUserRotation"] is True

    assert a.edit_rotation_point(tid, 0, 1.0, 0.0, 1.0) == 0
    assert a.get_rotation_point(tid, 0)["yaw"] == pytest.approx(1.0)
    assert a.remove_rotation_point(tid, 0) is True
    assert a.remove_rotation_point(tid, 0) is False


def test_engine_errors_come_back_typed(tmp_path) -> None:
    _, a, b = _clients(tmp_path)
    tid = a.register_timeline()

    with pytest.raises(EmptyTimelineError):
        a.start_playback(tid)
    with pytest.raises(OwnershipDeniedError):
        b.add_translation_point(tid, 0.0, (1.0, 2.0, 3.0))
    with pytest.raises(PathIndexError):
        a.get_translation_point(tid, 0)
    with pytest.raises(TimelineNotFoundError):
        a.get_timeline(tid + 100)
    with pytest.raises(RuntimeError):
        a.edit_translation_point(tid, -1, 0.0, (0.0, 0.0, 0.0))


def test_recording_and_files_through_the_client(tmp_path) -> None:
    registry, a, b = _clients(tmp_path)
    tid = a.register_timeline()
    registry.camera.enter_capture_mode()
    registry.camera.set_position((1.0, 1.0, 1.0))

    a.start_recording(tid)
    registry.update(1.0)
    a.pause_recording(tid)
    a.resume_recording(tid)
    a.stop_recording(tid)
    assert a.get_timeline(tid)["translationPoints"] == 2

    path = a.export_timeline(tid, "recorded.ini")
    assert path.endswith("recorded.ini")

    other = b.register_timeline()
    assert b.import_timeline(other, "recorded.ini") == (2, 2)
    assert [t["id"] for t in b.list_timelines(mine_only=True)] == [other]

    a.clear_timeline(tid)
    assert a.get_timeline(tid)["translationPoints"] == 0
    a.unregister_timeline(tid)
    assert len(a.list_timelines()) == 1


def test_owner_is_required() -> None:
    with pytest.raises(ValueError):
        TimelineClient("  ")
