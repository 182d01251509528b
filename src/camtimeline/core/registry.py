from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, TypeVar

import numpy as np

from ..io import timeline_file
from .camera import Angles, CameraSink, Reference, Vec3, as_angles, as_vec3
from .errors import (
    EmptyTimelineError,
    InvalidStateError,
    OwnershipDeniedError,
    Result,
    TimelineError,
    TimelineIOError,
    TimelineNotFoundError,
)
from .interpolation import InterpolationMode, PlaybackMode, normal_relative_angle
from .points import PointKind, RotationPoint, Transition, TranslationPoint
from .settings import EngineSettings
from .timeline import Timeline

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_ACTIVE_TIMELINE = 0


@dataclass
class TimelineState:
    """Registry-owned bookkeeping around one timeline.

    Never handed out: callers only ever see ids and `TimelineInfo` snapshots.
    """

    timeline: Timeline
    owner: str
    name: str = ""
    is_recording: bool = False
    is_recording_paused: bool = False
    is_playback_running: bool = False
    recording_time: float = 0.0
    last_recorded_point_time: float = 0.0
    show_menus: bool = True
    allow_user_rotation: bool = False
    saved_hud_visible: bool | None = None
    rotation_offset: Angles = (0.0, 0.0)
    rotation_offset_stale: bool = False

    @property
    def id(self) -> int:
        return self.timeline.id


@dataclass(frozen=True)
class TimelineInfo:
    id: int
    owner: str
    name: str
    translation_points: int
    rotation_points: int
    translation_revision: int
    rotation_revision: int
    duration: float
    playback_time: float
    playback_mode: PlaybackMode
    loop_time_offset: float
    is_recording: bool
    is_recording_paused: bool
    is_playing: bool
    is_paused: bool
    show_menus: bool
    allow_user_rotation: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "owner": self.owner,
            "name": self.name,
            "translationPoints": self.translation_points,
            "rotationPoints": self.rotation_points,
            "translationRevision": self.translation_revision,
            "rotationRevision": self.rotation_revision,
            "duration": self.duration,
            "playbackTime": self.playback_time,
            "playbackMode": self.playback_mode.name.lower(),
            "loopTimeOffset": self.loop_time_offset,
            "isRecording": self.is_recording,
            "isRecordingPaused": self.is_recording_paused,
            "isPlaying": self.is_playing,
            "isPaused": self.is_paused,
            "showMenus": self.show_menus,
            "allowUserRotation": self.allow_user_rotation,
        }


def _transition(time: float, mode: InterpolationMode | int | str, ease_in: bool, ease_out: bool) -> Transition:
    t = float(time)
    if not np.isfinite(t):
        raise ValueError("time must be finite")
    return Transition(time=t, mode=InterpolationMode.from_any(mode), ease_in=bool(ease_in), ease_out=bool(ease_out))


class TimelineRegistry:
    """Owns every timeline and serialises access to them.

    At most one timeline is active (recording or playing back) at any time. Each
    public method takes the registry lock once and delegates to `_..._locked`
    helpers, which assume the lock is held and never re-acquire it.

    Expected failures come back as `Result` values; they are also logged. Malformed
    arguments (non-finite numbers, unknown playback modes, registering with an empty
    owner) raise `ValueError` before anything is mutated.
    """

    def __init__(self, camera: CameraSink, settings: EngineSettings | None = None) -> None:
        self._lock = threading.RLock()
        self._camera = camera
        self._settings = settings or EngineSettings()
        self._timelines: dict[int, TimelineState] = {}
        self._next_id = 1
        self._active_id = NO_ACTIVE_TIMELINE

    @property
    def camera(self) -> CameraSink:
        return self._camera

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def _guarded(self, action: str, fn: Callable[[], T]) -> Result[T]:
        with self._lock:
            try:
                return Result.success(fn())
            except TimelineError as ex:
                logger.warning("%s rejected: %s", action, ex)
                return Result.from_error(ex)

    # -- lookups (lock held) -------------------------------------------------

    def _get_locked(self, timeline_id: int) -> TimelineState:
        state = self._timelines.get(int(timeline_id))
        if state is None:
            raise TimelineNotFoundError(f"Unknown timeline id: {timeline_id}")
        return state

    def _get_owned_locked(self, timeline_id: int, owner: str | None) -> TimelineState:
        state = self._get_locked(timeline_id)
        if owner is not None and state.owner != owner:
            raise OwnershipDeniedError(f"Timeline {state.id} is owned by {state.owner!r}, not {owner!r}")
        return state

    def _require_owner_locked(self, timeline_id: int, owner: str) -> TimelineState:
        state = self._get_locked(timeline_id)
        if not owner or state.owner != owner:
            raise OwnershipDeniedError(f"Timeline {state.id} is owned by {state.owner!r}, not {owner!r}")
        return state

    def _prepare_mutation_locked(self, state: TimelineState) -> None:
        if state.is_recording:
            raise InvalidStateError(f"Timeline {state.id} is recording; stop recording before editing it")
        if state.is_playback_running:
            logger.info("Stopping playback of timeline %d before editing it", state.id)
            self._stop_playback_locked(state)

    def _info_locked(self, state: TimelineState) -> TimelineInfo:
        tl = state.timeline
        return TimelineInfo(
            id=state.id,
            owner=state.owner,
            name=state.name,
            translation_points=tl.translation.point_count(),
            rotation_points=tl.rotation.point_count(),
            translation_revision=tl.translation.path.revision,
            rotation_revision=tl.rotation.path.revision,
            duration=tl.duration(),
            playback_time=tl.playback_time,
            playback_mode=tl.playback_mode,
            loop_time_offset=tl.loop_time_offset,
            is_recording=state.is_recording,
            is_recording_paused=state.is_recording_paused,
            is_playing=state.is_playback_running,
            is_paused=state.is_playback_running and tl.is_paused,
            show_menus=state.show_menus,
            allow_user_rotation=state.allow_user_rotation,
        )

    # -- lifecycle -----------------------------------------------------------

    def register_timeline(self, owner: str, name: str = "") -> Result[int]:
        if not owner:
            raise ValueError("owner must be a non-empty string")
        with self._lock:
            timeline_id = self._next_id
            self._next_id += 1
            self._timelines[timeline_id] = TimelineState(timeline=Timeline(timeline_id), owner=str(owner), name=str(name))
            logger.info("Registered timeline %d for %r", timeline_id, owner)
            return Result.success(timeline_id)

    def _unregister_locked(self, state: TimelineState) -> None:
        if state.is_recording:
            self._stop_recording_locked(state, add_final_point=False)
        if state.is_playback_running:
            self._stop_playback_locked(state)
        del self._timelines[state.id]
        logger.info("Unregistered timeline %d (owner %r)", state.id, state.owner)

    def unregister_timeline(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            self._unregister_locked(self._require_owner_locked(timeline_id, owner))

        return self._guarded("unregister_timeline", op)

    def shutdown(self) -> None:
        """Stop whatever is active and drop every timeline."""

        with self._lock:
            for state in list(self._timelines.values()):
                self._unregister_locked(state)
            self._active_id = NO_ACTIVE_TIMELINE
            logger.info("Timeline registry shut down")

    # -- recording -----------------------------------------------------------

    def _record_sample_locked(self, state: TimelineState, time: float, *, ease_in: bool, ease_out: bool) -> None:
        transition = Transition(time=float(time), ease_in=ease_in, ease_out=ease_out)
        position = as_vec3(self._camera.get_position())
        orientation = as_angles(self._camera.get_orientation())
        state.timeline.translation.add_point(TranslationPoint(transition=transition, value=position))
        state.timeline.rotation.add_point(RotationPoint(transition=transition, value=orientation))
        state.last_recorded_point_time = float(time)
        logger.debug("Recorded keyframe on timeline %d at t=%.3f", state.id, time)

    def _start_recording_locked(self, state: TimelineState) -> None:
        if self._active_id != NO_ACTIVE_TIMELINE:
            raise InvalidStateError(f"Timeline {self._active_id} is already active")
        if not self._camera.is_in_capture_mode():
            raise InvalidStateError("Recording requires the free camera to be active")

        state.timeline.clear()
        state.recording_time = 0.0
        state.last_recorded_point_time = 0.0
        state.is_recording_paused = False
        self._record_sample_locked(state, 0.0, ease_in=True, ease_out=False)
        state.is_recording = True
        self._active_id = state.id
        logger.info("Started recording timeline %d", state.id)

    def _stop_recording_locked(self, state: TimelineState, *, add_final_point: bool = True) -> None:
        if add_final_point:
            if state.recording_time > state.last_recorded_point_time:
                self._record_sample_locked(state, state.recording_time, ease_in=False, ease_out=True)
            else:
                # A key was just taken at this time; ease it out instead of stacking another.
                for track in (state.timeline.translation, state.timeline.rotation):
                    last = track.point_count() - 1
                    if last >= 0:
                        point = track.get_point(last)
                        track.edit_point(last, point.with_transition(replace(point.transition, ease_out=True)))
        state.is_recording = False
        state.is_recording_paused = False
        if self._active_id == state.id:
            self._active_id = NO_ACTIVE_TIMELINE
        logger.info(
            "Stopped recording timeline %d (%d keyframes, %.2fs)",
            state.id,
            state.timeline.translation.point_count(),
            state.recording_time,
        )

    def _require_recording_locked(self, state: TimelineState) -> None:
        if not state.is_recording or self._active_id != state.id:
            raise InvalidStateError(f"Timeline {state.id} is not recording")

    def start_recording(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            self._start_recording_locked(self._require_owner_locked(timeline_id, owner))

        return self._guarded("start_recording", op)

    def stop_recording(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_recording_locked(state)
            self._stop_recording_locked(state)

        return self._guarded("stop_recording", op)

    def pause_recording(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_recording_locked(state)
            state.is_recording_paused = True

        return self._guarded("pause_recording", op)

    def resume_recording(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_recording_locked(state)
            state.is_recording_paused = False

        return self._guarded("resume_recording", op)

    # -- playback ------------------------------------------------------------

    def _start_playback_locked(
        self,
        state: TimelineState,
        speed: float,
        duration: float | None,
        global_ease_in: bool,
        global_ease_out: bool,
    ) -> float:
        tl = state.timeline
        if self._active_id != NO_ACTIVE_TIMELINE:
            raise InvalidStateError(f"Timeline {self._active_id} is already active")
        if tl.point_count() == 0:
            raise EmptyTimelineError(f"Timeline {state.id} has no keyframes")
        if self._camera.is_in_capture_mode():
            raise InvalidStateError("Cannot start playback while the free camera is active")

        natural = tl.duration()
        if not natural > 0.0:
            raise InvalidStateError(f"Timeline {state.id} has zero duration")

        if duration is not None:
            if not (np.isfinite(duration) and duration > 0.0):
                logger.warning("Invalid playback duration %r, using the timeline duration %.3fs", duration, natural)
                duration = natural
            speed = natural / float(duration)
        elif not (np.isfinite(speed) and speed > 0.0):
            logger.warning("Invalid playback speed %r, defaulting to 1.0", speed)
            speed = 1.0

        playback_duration = natural / float(speed)
        if not playback_duration > 0.0:
            raise InvalidStateError(f"Timeline {state.id} has zero playback duration")

        tl.speed = float(speed)
        tl.global_ease_in = bool(global_ease_in)
        tl.global_ease_out = bool(global_ease_out)
        tl.start_playback(self._camera)

        if not state.show_menus:
            state.saved_hud_visible = self._camera.is_hud_visible()
            self._camera.set_hud_visible(False)
        self._camera.enter_capture_mode()

        state.rotation_offset = (0.0, 0.0)
        state.rotation_offset_stale = False
        state.is_playback_running = True
        self._active_id = state.id
        logger.info(
            "Started playback of timeline %d (speed %.3f, %.3fs, mode %s)",
            state.id,
            tl.speed,
            playback_duration,
            tl.playback_mode.name,
        )
        return playback_duration

    def _stop_playback_locked(self, state: TimelineState) -> None:
        state.timeline.reset_timeline()
        if self._camera.is_in_capture_mode():
            self._camera.exit_capture_mode()
        if state.saved_hud_visible is not None:
            self._camera.set_hud_visible(state.saved_hud_visible)
            state.saved_hud_visible = None
        state.rotation_offset = (0.0, 0.0)
        state.rotation_offset_stale = False
        state.is_playback_running = False
        if self._active_id == state.id:
            self._active_id = NO_ACTIVE_TIMELINE
        logger.info("Stopped playback of timeline %d", state.id)

    def _require_playing_locked(self, state: TimelineState) -> None:
        if not state.is_playback_running or self._active_id != state.id:
            raise InvalidStateError(f"Timeline {state.id} is not playing")

    def start_playback(
        self,
        timeline_id: int,
        owner: str,
        *,
        speed: float = 1.0,
        duration: float | None = None,
        global_ease_in: bool = False,
        global_ease_out: bool = False,
    ) -> Result[float]:
        """Start playback; the result carries the real-time playback duration.

        With `duration` set, speed is derived so the whole timeline takes that long.
        """

        def op() -> float:
            state = self._require_owner_locked(timeline_id, owner)
            return self._start_playback_locked(
                state,
                float(speed),
                None if duration is None else float(duration),
                global_ease_in,
                global_ease_out,
            )

        return self._guarded("start_playback", op)

    def stop_playback(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_playing_locked(state)
            self._stop_playback_locked(state)

        return self._guarded("stop_playback", op)

    def pause_playback(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_playing_locked(state)
            state.timeline.pause_playback()

        return self._guarded("pause_playback", op)

    def resume_playback(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._require_playing_locked(state)
            state.timeline.resume_playback()

        return self._guarded("resume_playback", op)

    # -- per-timeline settings -------------------------------------------------

    def set_playback_mode(self, timeline_id: int, owner: str, mode: PlaybackMode | int | str) -> Result[None]:
        mode = PlaybackMode.from_any(mode)

        def op() -> None:
            self._require_owner_locked(timeline_id, owner).timeline.set_playback_mode(mode)

        return self._guarded("set_playback_mode", op)

    def set_loop_time_offset(self, timeline_id: int, owner: str, offset: float) -> Result[None]:
        offset = float(offset)
        if not np.isfinite(offset):
            raise ValueError("loop time offset must be finite")
        if offset < 0.0:
            logger.warning("Negative loop time offset %.3f clamped to 0", offset)
            offset = 0.0

        def op() -> None:
            self._require_owner_locked(timeline_id, owner).timeline.set_loop_time_offset(offset)

        return self._guarded("set_loop_time_offset", op)

    def allow_user_rotation(self, timeline_id: int, owner: str, allow: bool) -> Result[None]:
        def op() -> None:
            self._require_owner_locked(timeline_id, owner).allow_user_rotation = bool(allow)

        return self._guarded("allow_user_rotation", op)

    def set_show_menus(self, timeline_id: int, owner: str, visible: bool) -> Result[None]:
        def op() -> None:
            self._require_owner_locked(timeline_id, owner).show_menus = bool(visible)

        return self._guarded("set_show_menus", op)

    # -- points ----------------------------------------------------------------

    def _add_translation_locked(self, timeline_id: int, owner: str, point: TranslationPoint) -> int:
        state = self._require_owner_locked(timeline_id, owner)
        self._prepare_mutation_locked(state)
        point = point.resolve(self._camera)
        return state.timeline.translation.add_point(point)

    def _add_rotation_locked(self, timeline_id: int, owner: str, point: RotationPoint) -> int:
        state = self._require_owner_locked(timeline_id, owner)
        self._prepare_mutation_locked(state)
        point = point.resolve(self._camera)
        return state.timeline.rotation.add_point(point)

    def add_translation_point(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        position: Vec3,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        point = TranslationPoint(transition=_transition(time, mode, ease_in, ease_out), value=as_vec3(position))
        return self._guarded(
            "add_translation_point", lambda: self._add_translation_locked(timeline_id, owner, point)
        )

    def add_translation_point_at_reference(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        reference: Reference,
        offset: Vec3 = (0.0, 0.0, 0.0),
        *,
        offset_relative: bool = False,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        if not isinstance(reference, Reference):
            raise ValueError("reference must provide get_position() and get_orientation()")
        point = TranslationPoint(
            transition=_transition(time, mode, ease_in, ease_out),
            kind=PointKind.REFERENCE,
            reference=reference,
            offset=as_vec3(offset),
            offset_relative=bool(offset_relative),
        )
        return self._guarded(
            "add_translation_point_at_reference", lambda: self._add_translation_locked(timeline_id, owner, point)
        )

    def add_translation_point_at_camera(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        point = TranslationPoint(transition=_transition(time, mode, ease_in, ease_out), kind=PointKind.CAMERA)
        return self._guarded(
            "add_translation_point_at_camera", lambda: self._add_translation_locked(timeline_id, owner, point)
        )

    def add_rotation_point(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        pitch: float,
        yaw: float,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        point = RotationPoint(
            transition=_transition(time, mode, ease_in, ease_out),
            value=as_angles(normal_relative_angle(np.asarray(as_angles((pitch, yaw))))),
        )
        return self._guarded("add_rotation_point", lambda: self._add_rotation_locked(timeline_id, owner, point))

    def add_rotation_point_at_reference(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        reference: Reference,
        offset: Angles = (0.0, 0.0),
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        if not isinstance(reference, Reference):
            raise ValueError("reference must provide get_position() and get_orientation()")
        point = RotationPoint(
            transition=_transition(time, mode, ease_in, ease_out),
            kind=PointKind.REFERENCE,
            reference=reference,
            offset=as_angles(offset),
        )
        return self._guarded(
            "add_rotation_point_at_reference", lambda: self._add_rotation_locked(timeline_id, owner, point)
        )

    def add_rotation_point_at_camera(
        self,
        timeline_id: int,
        owner: str,
        time: float,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
    ) -> Result[int]:
        point = RotationPoint(transition=_transition(time, mode, ease_in, ease_out), kind=PointKind.CAMERA)
        return self._guarded(
            "add_rotation_point_at_camera", lambda: self._add_rotation_locked(timeline_id, owner, point)
        )

    def edit_translation_point(
        self,
        timeline_id: int,
        owner: str,
        index: int,
        time: float,
        position: Vec3,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
        expected_revision: int | None = None,
    ) -> Result[int]:
        """Replace keyframe `index` with a world-space point; returns its new index."""

        point = TranslationPoint(transition=_transition(time, mode, ease_in, ease_out), value=as_vec3(position))

        def op() -> int:
            state = self._require_owner_locked(timeline_id, owner)
            track = state.timeline.translation
            track.get_point(index, expected_revision=expected_revision)
            self._prepare_mutation_locked(state)
            return track.edit_point(index, point)

        return self._guarded("edit_translation_point", op)

    def edit_rotation_point(
        self,
        timeline_id: int,
        owner: str,
        index: int,
        time: float,
        pitch: float,
        yaw: float,
        *,
        mode: InterpolationMode | int | str = InterpolationMode.CUBIC_HERMITE,
        ease_in: bool = False,
        ease_out: bool = False,
        expected_revision: int | None = None,
    ) -> Result[int]:
        point = RotationPoint(
            transition=_transition(time, mode, ease_in, ease_out),
            value=as_angles(normal_relative_angle(np.asarray(as_angles((pitch, yaw))))),
        )

        def op() -> int:
            state = self._require_owner_locked(timeline_id, owner)
            track = state.timeline.rotation
            track.get_point(index, expected_revision=expected_revision)
            self._prepare_mutation_locked(state)
            return track.edit_point(index, point)

        return self._guarded("edit_rotation_point", op)

    def remove_translation_point(self, timeline_id: int, owner: str, index: int) -> Result[bool]:
        """Remove keyframe `index`; an out-of-range index is a no-op (value False)."""

        def op() -> bool:
            state = self._require_owner_locked(timeline_id, owner)
            track = state.timeline.translation
            if not 0 <= int(index) < track.point_count():
                return False
            self._prepare_mutation_locked(state)
            return track.remove_point(index)

        return self._guarded("remove_translation_point", op)

    def remove_rotation_point(self, timeline_id: int, owner: str, index: int) -> Result[bool]:
        def op() -> bool:
            state = self._require_owner_locked(timeline_id, owner)
            track = state.timeline.rotation
            if not 0 <= int(index) < track.point_count():
                return False
            self._prepare_mutation_locked(state)
            return track.remove_point(index)

        return self._guarded("remove_rotation_point", op)

    def clear_timeline(self, timeline_id: int, owner: str) -> Result[None]:
        def op() -> None:
            state = self._require_owner_locked(timeline_id, owner)
            self._prepare_mutation_locked(state)
            state.timeline.clear()
            logger.info("Cleared timeline %d", state.id)

        return self._guarded("clear_timeline", op)

    # -- queries -----------------------------------------------------------------

    def get_translation_point(
        self,
        timeline_id: int,
        index: int,
        *,
        owner: str | None = None,
        expected_revision: int | None = None,
    ) -> Result[TranslationPoint]:
        def op() -> TranslationPoint:
            state = self._get_owned_locked(timeline_id, owner)
            point = state.timeline.translation.get_point(index, expected_revision=expected_revision)
            # Detach from the live reference so the snapshot stays a plain value.
            return replace(point, reference=None)

        return self._guarded("get_translation_point", op)

    def get_rotation_point(
        self,
        timeline_id: int,
        index: int,
        *,
        owner: str | None = None,
        expected_revision: int | None = None,
    ) -> Result[RotationPoint]:
        def op() -> RotationPoint:
            state = self._get_owned_locked(timeline_id, owner)
            point = state.timeline.rotation.get_point(index, expected_revision=expected_revision)
            return replace(point, reference=None)

        return self._guarded("get_rotation_point", op)

    def get_translation_point_count(self, timeline_id: int, *, owner: str | None = None) -> Result[int]:
        return self._guarded(
            "get_translation_point_count",
            lambda: self._get_owned_locked(timeline_id, owner).timeline.translation.point_count(),
        )

    def get_rotation_point_count(self, timeline_id: int, *, owner: str | None = None) -> Result[int]:
        return self._guarded(
            "get_rotation_point_count",
            lambda: self._get_owned_locked(timeline_id, owner).timeline.rotation.point_count(),
        )

    def get_duration(self, timeline_id: int, *, owner: str | None = None) -> Result[float]:
        return self._guarded("get_duration", lambda: self._get_owned_locked(timeline_id, owner).timeline.duration())

    def get_playback_time(self, timeline_id: int, *, owner: str | None = None) -> Result[float]:
        return self._guarded(
            "get_playback_time", lambda: self._get_owned_locked(timeline_id, owner).timeline.playback_time
        )

    def get_translation(self, timeline_id: int, time: float, *, owner: str | None = None) -> Result[Vec3]:
        return self._guarded(
            "get_translation", lambda: self._get_owned_locked(timeline_id, owner).timeline.get_translation(time)
        )

    def get_rotation(self, timeline_id: int, time: float, *, owner: str | None = None) -> Result[Angles]:
        return self._guarded(
            "get_rotation", lambda: self._get_owned_locked(timeline_id, owner).timeline.get_rotation(time)
        )

    def is_recording(self, timeline_id: int) -> bool:
        with self._lock:
            state = self._timelines.get(int(timeline_id))
            return bool(state is not None and state.is_recording)

    def is_playing(self, timeline_id: int) -> bool:
        with self._lock:
            state = self._timelines.get(int(timeline_id))
            return bool(state is not None and state.is_playback_running)

    def is_paused(self, timeline_id: int) -> bool:
        with self._lock:
            state = self._timelines.get(int(timeline_id))
            if state is None:
                return False
            if state.is_recording:
                return state.is_recording_paused
            return state.is_playback_running and state.timeline.is_paused

    def get_active_timeline_id(self) -> int:
        with self._lock:
            return self._active_id

    def get_timeline_info(self, timeline_id: int, *, owner: str | None = None) -> Result[TimelineInfo]:
        return self._guarded(
            "get_timeline_info", lambda: self._info_locked(self._get_owned_locked(timeline_id, owner))
        )

    def list_timelines(self, *, owner: str | None = None) -> list[TimelineInfo]:
        with self._lock:
            return [
                self._info_locked(state)
                for state in self._timelines.values()
                if owner is None or state.owner == owner
            ]

    # -- files -------------------------------------------------------------------

    def _data_path(self, relative: str | Path) -> Path:
        try:
            return self._settings.resolve_data_path(relative)
        except ValueError as ex:
            raise TimelineIOError(str(ex)) from ex

    def import_timeline(
        self,
        timeline_id: int,
        owner: str,
        path: str | Path,
        *,
        time_offset: float = 0.0,
        append: bool = False,
    ) -> Result[tuple[int, int]]:
        """Load keyframes from a timeline file under the data directory.

        Existing keyframes are replaced unless `append` is set. The result carries
        the number of translation and rotation keyframes read.
        """

        time_offset = float(time_offset)
        if not np.isfinite(time_offset):
            raise ValueError("time_offset must be finite")
        if time_offset < 0.0:
            logger.warning("Negative import time offset %.3f clamped to 0", time_offset)
            time_offset = 0.0

        def op() -> tuple[int, int]:
            state = self._require_owner_locked(timeline_id, owner)
            if state.is_recording:
                raise InvalidStateError(f"Timeline {state.id} is recording; stop recording before importing")
            file_path = self._data_path(path)
            sections = timeline_file.read_timeline_file(file_path)
            # Parse fully before touching the timeline so a bad file leaves it intact.
            state.timeline.parse_sections(sections, time_offset=time_offset)
            self._prepare_mutation_locked(state)
            counts = state.timeline.import_sections(sections, time_offset=time_offset, append=append)
            logger.info(
                "Imported %d translation and %d rotation keyframes into timeline %d from %s",
                counts[0],
                counts[1],
                state.id,
                file_path,
            )
            return counts

        return self._guarded("import_timeline", op)

    def export_timeline(
        self,
        timeline_id: int,
        owner: str,
        path: str | Path,
        *,
        use_degrees: bool = True,
    ) -> Result[Path]:
        def op() -> Path:
            state = self._require_owner_locked(timeline_id, owner)
            file_path = self._data_path(path)
            timeline_file.write_timeline_file(file_path, state.timeline.export_sections(use_degrees=use_degrees))
            logger.info(
                "Exported %d translation and %d rotation keyframes from timeline %d to %s",
                state.timeline.translation.point_count(),
                state.timeline.rotation.point_count(),
                state.id,
                file_path,
            )
            return file_path

        return self._guarded("export_timeline", op)

    # -- per-tick update -----------------------------------------------------------

    def _tick_recording_locked(self, state: TimelineState, delta_time: float) -> None:
        if not self._camera.is_in_capture_mode():
            logger.warning("Free camera left while recording timeline %d; recording stopped", state.id)
            self._stop_recording_locked(state, add_final_point=False)
            return
        if state.is_recording_paused:
            return
        state.recording_time += delta_time
        if state.recording_time - state.last_recorded_point_time >= self._settings.recording_interval:
            self._record_sample_locked(state, state.recording_time, ease_in=False, ease_out=False)

    def _apply_rotation_locked(self, state: TimelineState, sampled: Angles, user_rotating: bool) -> None:
        if user_rotating and state.allow_user_rotation:
            state.rotation_offset_stale = True
            return
        if state.rotation_offset_stale:
            current = np.asarray(self._camera.get_orientation(), dtype=np.float64)
            offset = normal_relative_angle(current - np.asarray(sampled, dtype=np.float64))
            state.rotation_offset = as_angles(offset)
            state.rotation_offset_stale = False
        target = normal_relative_angle(np.asarray(sampled, dtype=np.float64) + np.asarray(state.rotation_offset))
        pitch, yaw = as_angles(target)
        self._camera.set_orientation(pitch, yaw)

    def _tick_playback_locked(self, state: TimelineState, delta_time: float, user_rotating: bool) -> None:
        tl = state.timeline
        if not self._camera.is_in_capture_mode():
            logger.warning("Free camera left during playback of timeline %d; playback stopped", state.id)
            self._stop_playback_locked(state)
            return
        if tl.is_paused:
            return

        tl.update_playback(delta_time * tl.speed)
        tl.refresh_reference_points()
        sample_time = tl.sample_time()
        if tl.translation.point_count():
            self._camera.set_position(tl.get_translation(sample_time))
        if tl.rotation.point_count():
            self._apply_rotation_locked(state, tl.get_rotation(sample_time), user_rotating)

        if not tl.is_playing:
            self._stop_playback_locked(state)

    def update(self, delta_time: float, *, user_rotating: bool = False) -> None:
        """Advance the active timeline by `delta_time` real-time seconds.

        `user_rotating` reports whether the user is turning the camera this frame.
        """

        dt = float(delta_time)
        if not np.isfinite(dt) or dt < 0.0:
            logger.warning("Ignoring invalid tick delta %r", delta_time)
            return
        with self._lock:
            if self._active_id == NO_ACTIVE_TIMELINE:
                return
            state = self._timelines.get(self._active_id)
            if state is None:
                self._active_id = NO_ACTIVE_TIMELINE
                return
            if state.is_recording:
                self._tick_recording_locked(state, dt)
            elif state.is_playback_running:
                self._tick_playback_locked(state, dt, user_rotating)


__all__ = [
    "NO_ACTIVE_TIMELINE",
    "TimelineInfo",
    "TimelineRegistry",
    "TimelineState",
]
