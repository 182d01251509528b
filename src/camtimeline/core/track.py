from __future__ import annotations

from typing import Generic, TypeVar

import numpy as np

from .camera import CameraSink
from .interpolation import InterpolationMode, PlaybackMode, apply_easing, hermite_basis
from .path import KeyframePath, RotationPath, TranslationPath
from .points import KeyframePoint, RotationPoint, TranslationPoint

P = TypeVar("P", bound=KeyframePoint)


class TimelineTrack(Generic[P]):
    """One animated channel: a keyframe path plus its playback clock."""

    def __init__(self, path: KeyframePath[P]) -> None:
        self.path = path
        self._playback_time = 0.0
        self._is_playing = False
        self._is_paused = False
        self._playback_mode = PlaybackMode.END
        self._loop_time_offset = 0.0

    # -- editing -----------------------------------------------------------

    def add_point(self, point: P) -> int:
        idx = self.path.add_point(point)
        self.reset_timeline()
        return idx

    def edit_point(self, index: int, point: P) -> int:
        idx = self.path.edit_point(index, point)
        self.reset_timeline()
        return idx

    def remove_point(self, index: int) -> bool:
        removed = self.path.remove_point(index)
        self.reset_timeline()
        return removed

    def clear_points(self) -> None:
        self.path.clear_path()
        self.reset_timeline()
        self._playback_mode = PlaybackMode.END

    def get_point(self, index: int, *, expected_revision: int | None = None) -> P:
        return self.path.get_point(index, expected_revision=expected_revision)

    def point_count(self) -> int:
        return self.path.point_count()

    # -- playback state ----------------------------------------------------

    @property
    def playback_time(self) -> float:
        return self._playback_time

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def playback_mode(self) -> PlaybackMode:
        return self._playback_mode

    def set_playback_mode(self, mode: PlaybackMode) -> None:
        self._playback_mode = PlaybackMode.from_any(mode)

    @property
    def loop_time_offset(self) -> float:
        return self._loop_time_offset

    def set_loop_time_offset(self, offset: float) -> None:
        self._loop_time_offset = max(0.0, float(offset))

    def duration(self) -> float:
        if self.point_count() == 0:
            return 0.0
        last = self.path.last_time()
        if self._playback_mode == PlaybackMode.LOOP:
            return last + self._loop_time_offset
        return last

    def start_playback(self, camera: CameraSink | None = None) -> None:
        self.path.update_live_points(camera)
        self._is_playing = True
        self._is_paused = False

    def reset_timeline(self) -> None:
        self._playback_time = 0.0
        self._is_playing = False
        self._is_paused = False

    def pause_playback(self) -> None:
        self._is_paused = True

    def resume_playback(self) -> None:
        self._is_paused = False

    def update_timeline(self, delta_time: float) -> None:
        if self._is_paused or not self._is_playing:
            return
        if self.point_count() == 0:
            self._is_playing = False
            return

        self._playback_time += float(delta_time)
        duration = self.duration()
        if self._playback_time < duration:
            return

        if self._playback_mode == PlaybackMode.LOOP and duration > 0.0:
            self._playback_time = float(np.fmod(self._playback_time, duration))
        elif self._playback_mode == PlaybackMode.WAIT:
            # Hold the final pose until someone stops playback explicitly.
            self._playback_time = duration
        else:
            self._playback_time = duration
            self._is_playing = False

    # -- sampling ----------------------------------------------------------

    def get_point_at_time(self, time: float) -> tuple[float, ...]:
        return self.sample(time).value  # type: ignore[attr-defined]

    def sample(self, time: float) -> P:
        count = self.point_count()
        if count == 0:
            return self.path.point_type.zero()

        t = float(time)
        last_time = self.path.last_time()

        if self._playback_mode == PlaybackMode.LOOP and self._loop_time_offset > 0.0 and t > last_time:
            # Virtual segment from the last point back to the first.
            index = count
            progress = float(np.clip((t - last_time) / self._loop_time_offset, 0.0, 1.0))
        else:
            index = self.path.first_index_at_or_after(t)
            if index >= count:
                index = count - 1
                progress = 1.0
            elif index == 0:
                progress = 0.0
            else:
                prev_time = self.path.get_point(index - 1).time
                curr_time = self.path.get_point(index).time
                span = curr_time - prev_time
                progress = float(np.clip((t - prev_time) / span, 0.0, 1.0)) if span > 0.0 else 1.0

        return self._interpolate(index, progress)

    def _segment(self, index: int) -> tuple[P, P, int, bool] | None:
        """Return (prev, curr, curr_index, is_virtual) or None when no segment ends at `index`."""

        count = self.point_count()
        is_virtual = self._playback_mode == PlaybackMode.LOOP and index == count
        curr_idx = 0 if is_virtual else min(index, count - 1)
        if curr_idx == 0 and not is_virtual:
            return None
        prev = self.path.get_point(count - 1 if is_virtual else curr_idx - 1)
        curr = self.path.get_point(curr_idx)
        return prev, curr, curr_idx, is_virtual

    def _interpolate(self, index: int, progress: float) -> P:
        # `index == count` only happens for the virtual loop segment, whose endpoint is point 0.
        endpoint = self.path.get_point(index % self.point_count())

        mode = endpoint.transition.mode
        if mode == InterpolationMode.NONE:
            return endpoint.wrap()
        if mode == InterpolationMode.LINEAR:
            return self._linear(index, progress)
        return self._cubic_hermite(index, progress)

    def _linear(self, index: int, progress: float) -> P:
        seg = self._segment(index)
        if seg is None:
            return self.path.get_point(0).wrap()
        prev, curr, _, _ = seg
        curr = curr.unwrap(prev)
        if prev.is_nearly_equal(curr):
            return curr.wrap()
        t = apply_easing(progress, curr.transition.ease_in, curr.transition.ease_out)
        return (prev + (curr - prev) * t).wrap()

    def _cubic_hermite(self, index: int, progress: float) -> P:
        count = self.point_count()
        if count == 1:
            return self.path.get_point(0).wrap()
        seg = self._segment(index)
        if seg is None:
            return self.path.get_point(0).wrap()
        prev, curr, curr_idx, _ = seg
        curr = curr.unwrap(prev)
        if prev.is_nearly_equal(curr):
            return prev.wrap()

        if self._playback_mode == PlaybackMode.LOOP:
            p0 = self.path.get_point((curr_idx - 2) % count)
            p3 = self.path.get_point((curr_idx + 1) % count)
        else:
            p0 = self.path.get_point(curr_idx - 2) if curr_idx >= 2 else prev
            p3 = self.path.get_point(curr_idx + 1) if curr_idx + 1 < count else curr
        p1 = prev
        p2 = curr
        # Neighbours are re-expressed next to p1/p2 so rotations never cross the +-pi seam.
        p0 = p0.unwrap(p1)
        p3 = p3.unwrap(p2)

        t = apply_easing(progress, curr.transition.ease_in, curr.transition.ease_out)
        h00, h10, h01, h11 = hermite_basis(t)
        m1 = (p2 - p0) * 0.5
        m2 = (p3 - p1) * 0.5
        result = p1 * h00 + m1 * h10 + p2 * h01 + m2 * h11
        return result.with_transition(curr.transition).wrap()


def translation_track() -> TimelineTrack[TranslationPoint]:
    return TimelineTrack(TranslationPath())


def rotation_track() -> TimelineTrack[RotationPoint]:
    return TimelineTrack(RotationPath())
