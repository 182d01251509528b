from __future__ import annotations

import numpy as np
import pytest

from camtimeline.core.errors import TimelineIOError
from camtimeline.core.interpolation import InterpolationMode, PlaybackMode
from camtimeline.core.points import RotationPoint, Transition, TranslationPoint
from camtimeline.core.timeline import FILE_FORMAT_VERSION, Timeline


def _timeline() -> Timeline:
    tl = Timeline(1)
    lin = InterpolationMode.LINEAR
    tl.translation.add_point(TranslationPoint(transition=Transition(time=0.0, mode=lin), value=(0.0, 0.0, 0.0)))
    tl.translation.add_point(
        TranslationPoint(transition=Transition(time=10.0, mode=lin, ease_out=True), value=(100.0, 0.0, 0.0))
    )
    tl.rotation.add_point(RotationPoint(transition=Transition(time=0.0, mode=lin, ease_in=True), value=(0.1, -2.0)))
    tl.rotation.add_point(RotationPoint(transition=Transition(time=4.0, mode=lin), value=(0.2, 3.0)))
    return tl


def test_duration_and_flags_span_both_tracks() -> None:
    tl = _timeline()
    assert tl.duration() == pytest.approx(10.0)
    assert tl.point_count() == 4
    assert not tl.is_playing

    tl.start_playback()
    assert tl.is_playing
    tl.update_playback(6.0)
    # The rotation track is done, the translation track keeps going.
    assert not tl.rotation.is_playing
    assert tl.translation.is_playing
    assert tl.is_playing
    assert tl.playback_time == pytest.approx(6.0)

    tl.pause_playback()
    assert tl.is_paused
    tl.resume_playback()
    assert not tl.is_paused

    tl.update_playback(10.0)
    assert not tl.is_playing
    assert tl.playback_time == pytest.approx(10.0)


def test_playback_mode_and_loop_offset_apply_to_both_tracks() -> None:
    tl = _timeline()
    tl.set_playback_mode("loop")
    tl.set_loop_time_offset(2.0)
    assert tl.translation.playback_mode == PlaybackMode.LOOP
    assert tl.rotation.playback_mode == PlaybackMode.LOOP
    assert tl.rotation.loop_time_offset == 2.0
    assert tl.duration() == pytest.approx(12.0)


def test_global_easing_remaps_the_sample_time() -> None:
    tl = _timeline()
    assert tl.sample_time(2.5) == pytest.approx(2.5)

    tl.global_ease_in = True
    tl.global_ease_out = True
    assert tl.sample_time(2.5) == pytest.approx(1.5625)
    assert tl.sample_time(5.0) == pytest.approx(5.0)
    assert tl.sample_time(10.0) == pytest.approx(10.0)


def test_sections_round_trip_in_degrees() -> None:
    tl = _timeline()
    tl.set_playback_mode(PlaybackMode.LOOP)
    tl.set_loop_time_offset(1.5)
    sections = tl.export_sections()

    general = dict(sections[0][1])
    assert sections[0][0] == "General"
    assert general["Version"] == str(FILE_FORMAT_VERSION)
    assert general["UseDegrees"] == "1"
    assert general["PlaybackMode"] == "1"

    other = Timeline(2)
    assert other.import_sections(sections) == (2, 2)
    assert other.playback_mode == PlaybackMode.LOOP
    assert other.loop_time_offset == pytest.approx(1.5)

    for a, b in zip(tl.translation.path.points(), other.translation.path.points()):
        assert a.time == b.time
        assert a.transition == b.transition
        assert np.allclose(a.value, b.value)
    for a, b in zip(tl.rotation.path.points(), other.rotation.path.points()):
        assert a.time == b.time
        assert a.transition.ease_in == b.transition.ease_in
        assert a.transition.ease_out == b.transition.ease_out
        assert np.allclose(a.value, b.value, atol=1e-4)


def test_import_replaces_or_appends_with_time_offset() -> None:
    source = _timeline().export_sections(use_degrees=False)

    tl = _timeline()
    tl.import_sections(source, time_offset=20.0, append=True)
    assert tl.translation.point_count() == 4
    assert tl.translation.path.last_time() == pytest.approx(30.0)

    tl.import_sections(source)
    assert tl.translation.point_count() == 2
    assert tl.rotation.get_point(1).value == pytest.approx((0.2, 3.0))


def test_bad_sections_leave_the_timeline_untouched() -> None:
    tl = _timeline()
    with pytest.raises(TimelineIOError):
        tl.import_sections([("General", {"PlaybackMode": "7"}), ("TranslatePoint", {"Time": "1"})])
    with pytest.raises(TimelineIOError):
        tl.import_sections([("RotatePoint", {"Pitch": "x", "Time": "1"})])
    assert tl.point_count() == 4
