from __future__ import annotations

import time

import pytest

from camtimeline.core.camera import InMemoryCamera
from camtimeline.core.registry import TimelineRegistry
from camtimeline.core.settings import EngineSettings
from camtimeline.runtime.driver import TickDriver


def _playing_registry() -> tuple[TimelineRegistry, int]:
    reg = TimelineRegistry(InMemoryCamera())
    tid = reg.register_timeline("driver-test").unwrap()
    reg.add_translation_point(tid, "driver-test", 0.0, (0.0, 0.0, 0.0), mode="linear").unwrap()
    reg.add_translation_point(tid, "driver-test", 100.0, (100.0, 0.0, 0.0), mode="linear").unwrap()
    reg.start_playback(tid, "driver-test").unwrap()
    return reg, tid


def test_manual_tick_forwards_user_rotation() -> None:
    reg, tid = _playing_registry()
    calls: list[int] = []

    def rotating() -> bool:
        calls.append(1)
        return False

    driver = TickDriver(reg, tick_rate_hz=10.0, user_rotating=rotating)
    assert driver.interval == pytest.approx(0.1)
    driver.tick(2.0)
    assert calls == [1]
    assert reg.get_playback_time(tid).unwrap() == pytest.approx(2.0)


def test_driver_thread_advances_playback() -> None:
    reg, tid = _playing_registry()
    driver = TickDriver(reg, tick_rate_hz=200.0)
    driver.start()
    try:
        assert driver.running
        deadline = time.monotonic() + 2.0
        while reg.get_playback_time(tid).unwrap() <= 0.0 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        driver.stop()
    assert not driver.running
    assert reg.get_playback_time(tid).unwrap() > 0.0


def test_rate_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TickDriver(TimelineRegistry(InMemoryCamera()), tick_rate_hz=0.0)


def test_default_interval_comes_from_settings() -> None:
    reg = TimelineRegistry(InMemoryCamera(), EngineSettings(tick_rate_hz=20.0))
    assert TickDriver(reg).interval == pytest.approx(0.05)
