from __future__ import annotations

import numpy as np
import pytest

from camtimeline.core.interpolation import InterpolationMode, PlaybackMode, normal_relative_angle, shortest_angle_delta
from camtimeline.core.points import RotationPoint, Transition, TranslationPoint
from camtimeline.core.track import rotation_track, translation_track


def _tp(
    time: float,
    x: float,
    mode: InterpolationMode = InterpolationMode.LINEAR,
    ease_in: bool = False,
    ease_out: bool = False,
) -> TranslationPoint:
    return TranslationPoint(
        transition=Transition(time=time, mode=mode, ease_in=ease_in, ease_out=ease_out),
        value=(x, 0.0, 0.0),
    )


def _rp(time: float, yaw: float, mode: InterpolationMode = InterpolationMode.LINEAR) -> RotationPoint:
    return RotationPoint(transition=Transition(time=time, mode=mode), value=(0.0, float(normal_relative_angle(yaw))))


def test_empty_track_samples_zero() -> None:
    track = translation_track()
    assert track.get_point_at_time(3.0) == (0.0, 0.0, 0.0)
    assert track.duration() == 0.0
    assert rotation_track().get_point_at_time(1.0) == (0.0, 0.0)


def test_linear_segments_end_to_end() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0))
    track.add_point(_tp(10.0, 100.0))
    assert np.allclose(track.get_point_at_time(5.0), (50.0, 0.0, 0.0))

    track.add_point(_tp(5.0, 50.0))
    assert np.allclose(track.get_point_at_time(2.5), (25.0, 0.0, 0.0))
    assert np.allclose(track.get_point_at_time(7.5), (75.0, 0.0, 0.0))


def test_sampling_outside_keyframes_holds_the_ends() -> None:
    track = translation_track()
    track.add_point(_tp(2.0, 10.0))
    track.add_point(_tp(4.0, 20.0))
    assert track.get_point_at_time(0.0) == (10.0, 0.0, 0.0)
    assert track.get_point_at_time(99.0) == (20.0, 0.0, 0.0)
    assert track.get_point_at_time(4.0) == (20.0, 0.0, 0.0)


def test_step_mode_returns_endpoint_value() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0, mode=InterpolationMode.NONE))
    track.add_point(_tp(10.0, 100.0, mode=InterpolationMode.NONE))
    assert track.get_point_at_time(2.5) == (100.0, 0.0, 0.0)
    assert track.get_point_at_time(0.0) == (0.0, 0.0, 0.0)


def test_segment_easing_uses_endpoint_flags() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0))
    track.add_point(_tp(10.0, 100.0, ease_in=True, ease_out=True))
    assert track.get_point_at_time(2.5)[0] == pytest.approx(15.625)
    assert track.get_point_at_time(5.0)[0] == pytest.approx(50.0)


def test_cubic_hermite_passes_through_keys_and_keeps_lines_straight() -> None:
    track = translation_track()
    for t in range(4):
        track.add_point(_tp(float(t), float(t), mode=InterpolationMode.CUBIC_HERMITE))

    for t in range(4):
        assert track.get_point_at_time(float(t))[0] == pytest.approx(float(t))
    # Evenly spaced collinear keys give a straight interior segment.
    assert track.get_point_at_time(1.5)[0] == pytest.approx(1.5)


def test_loop_virtual_segment_returns_to_first_point() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0))
    track.add_point(_tp(5.0, 10.0))
    track.set_playback_mode(PlaybackMode.LOOP)
    track.set_loop_time_offset(5.0)

    assert track.duration() == pytest.approx(10.0)
    assert np.allclose(track.get_point_at_time(7.5), (5.0, 0.0, 0.0))


def test_loop_wrap_is_continuous() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0, mode=InterpolationMode.CUBIC_HERMITE))
    track.add_point(_tp(5.0, 10.0, mode=InterpolationMode.CUBIC_HERMITE))
    track.set_playback_mode(PlaybackMode.LOOP)
    track.set_loop_time_offset(5.0)

    eps = 1e-4
    end = np.asarray(track.get_point_at_time(track.duration() - eps))
    start = np.asarray(track.get_point_at_time(eps))
    assert np.allclose(end, start, atol=1e-3)


def test_update_timeline_end_loop_and_wait() -> None:
    def make(mode: PlaybackMode):
        track = translation_track()
        track.add_point(_tp(0.0, 0.0))
        track.add_point(_tp(10.0, 100.0))
        track.set_playback_mode(mode)
        track.start_playback()
        return track

    end = make(PlaybackMode.END)
    end.update_timeline(4.0)
    assert end.playback_time == pytest.approx(4.0)
    end.update_timeline(8.0)
    assert end.playback_time == pytest.approx(10.0)
    assert not end.is_playing

    loop = make(PlaybackMode.LOOP)
    loop.update_timeline(12.0)
    assert loop.playback_time == pytest.approx(2.0)
    assert loop.is_playing

    wait = make(PlaybackMode.WAIT)
    wait.update_timeline(25.0)
    assert wait.playback_time == pytest.approx(10.0)
    assert wait.is_playing


def test_pause_freezes_the_clock_and_edits_reset_it() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0))
    track.add_point(_tp(10.0, 100.0))
    track.start_playback()
    track.update_timeline(1.0)

    track.pause_playback()
    track.update_timeline(5.0)
    assert track.playback_time == pytest.approx(1.0)
    assert track.is_paused

    track.resume_playback()
    track.update_timeline(1.0)
    assert track.playback_time == pytest.approx(2.0)

    track.add_point(_tp(3.0, 30.0))
    assert track.playback_time == 0.0
    assert not track.is_playing


def test_playback_without_points_stops_immediately() -> None:
    track = translation_track()
    track.start_playback()
    track.update_timeline(0.1)
    assert not track.is_playing


def test_clear_resets_playback_mode() -> None:
    track = translation_track()
    track.add_point(_tp(0.0, 0.0))
    track.set_playback_mode(PlaybackMode.LOOP)
    track.clear_points()
    assert track.playback_mode == PlaybackMode.END
    assert track.point_count() == 0


def test_rotation_takes_the_short_way_across_the_seam() -> None:
    track = rotation_track()
    track.add_point(_rp(0.0, 3.0))
    track.add_point(_rp(10.0, -3.0))

    mid = track.get_point_at_time(5.0)
    assert abs(abs(mid[1]) - np.pi) < 1e-6
    assert track.get_point_at_time(2.5)[1] == pytest.approx(3.0 + 0.25 * (2.0 * np.pi - 6.0))
    assert track.get_point_at_time(7.5)[1] == pytest.approx(-3.0 - 0.25 * (2.0 * np.pi - 6.0))


@pytest.mark.parametrize("mode", [InterpolationMode.LINEAR, InterpolationMode.CUBIC_HERMITE])
def test_large_angular_step_between_adjacent_keys(mode: InterpolationMode) -> None:
    # 3/2 pi apart as stored; the short way round is -pi/2.
    track = rotation_track()
    track.add_point(RotationPoint(transition=Transition(time=0.0, mode=mode), value=(0.0, 0.0)))
    track.add_point(RotationPoint(transition=Transition(time=10.0, mode=mode), value=(0.0, 1.5 * np.pi)))

    assert track.get_point_at_time(5.0)[1] == pytest.approx(-0.25 * np.pi)
    yaws = np.asarray([track.get_point_at_time(t)[1] for t in np.linspace(0.0, 10.0, 101)])
    assert np.all(yaws <= 1e-9)
    assert np.all(yaws >= -0.5 * np.pi - 1e-9)


def test_hermite_rotation_stays_continuous_through_a_full_turn() -> None:
    track = rotation_track()
    for i, yaw in enumerate((0.0, 2.5, 5.0, 7.5)):
        track.add_point(_rp(5.0 * i, yaw, mode=InterpolationMode.CUBIC_HERMITE))

    samples = np.asarray([track.get_point_at_time(t)[1] for t in np.linspace(0.0, 15.0, 1501)])
    steps = shortest_angle_delta(samples[:-1], samples[1:])
    assert np.max(np.abs(steps)) < 0.05
    # Net motion is the accumulated forward turn, not a rewind.
    assert np.sum(steps) == pytest.approx(7.5, abs=1e-6)
