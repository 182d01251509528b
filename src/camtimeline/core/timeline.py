from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from .camera import Angles, CameraSink, Vec3
from .errors import TimelineIOError
from .interpolation import PlaybackMode, apply_easing
from .path import Section, section_dict
from .points import RotationPoint, TranslationPoint
from .track import TimelineTrack, rotation_track, translation_track

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1
GENERAL_SECTION = "General"


def _parse_general_flag(raw: str | None, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    v = raw.strip().lower()
    if v in {"true", "yes", "on"}:
        return True
    if v in {"false", "no", "off"}:
        return False
    return int(float(v)) != 0


class Timeline:
    """A translation track and a rotation track advanced by one clock."""

    def __init__(self, timeline_id: int) -> None:
        self.id = int(timeline_id)
        self.translation: TimelineTrack[TranslationPoint] = translation_track()
        self.rotation: TimelineTrack[RotationPoint] = rotation_track()
        self.speed = 1.0
        self.global_ease_in = False
        self.global_ease_out = False

    def _tracks(self) -> tuple[TimelineTrack, TimelineTrack]:
        return self.translation, self.rotation

    # -- playback ----------------------------------------------------------

    @property
    def playback_mode(self) -> PlaybackMode:
        return self.translation.playback_mode

    def set_playback_mode(self, mode: PlaybackMode | int | str) -> None:
        mode = PlaybackMode.from_any(mode)
        for track in self._tracks():
            track.set_playback_mode(mode)

    @property
    def loop_time_offset(self) -> float:
        return self.translation.loop_time_offset

    def set_loop_time_offset(self, offset: float) -> None:
        for track in self._tracks():
            track.set_loop_time_offset(offset)

    def duration(self) -> float:
        return max(self.translation.duration(), self.rotation.duration())

    def point_count(self) -> int:
        return self.translation.point_count() + self.rotation.point_count()

    @property
    def is_playing(self) -> bool:
        return self.translation.is_playing or self.rotation.is_playing

    @property
    def is_paused(self) -> bool:
        return self.translation.is_paused or self.rotation.is_paused

    @property
    def playback_time(self) -> float:
        """Clock of the track that spans the whole timeline."""

        if self.rotation.point_count() and self.rotation.duration() >= self.translation.duration():
            return self.rotation.playback_time
        return self.translation.playback_time

    def start_playback(self, camera: CameraSink | None = None) -> None:
        for track in self._tracks():
            track.reset_timeline()
            track.start_playback(camera)

    def reset_timeline(self) -> None:
        for track in self._tracks():
            track.reset_timeline()

    def pause_playback(self) -> None:
        for track in self._tracks():
            track.pause_playback()

    def resume_playback(self) -> None:
        for track in self._tracks():
            track.resume_playback()

    def update_playback(self, delta_time: float) -> None:
        for track in self._tracks():
            track.update_timeline(delta_time)

    def refresh_reference_points(self) -> None:
        for track in self._tracks():
            track.path.update_reference_points()

    def sample_time(self, playback_time: float | None = None) -> float:
        """Playback time after the timeline-wide ease-in/out is applied."""

        t = self.playback_time if playback_time is None else float(playback_time)
        duration = self.duration()
        if duration <= 0.0 or not (self.global_ease_in or self.global_ease_out):
            return t
        progress = float(np.clip(t / duration, 0.0, 1.0))
        return apply_easing(progress, self.global_ease_in, self.global_ease_out) * duration

    # -- sampling ----------------------------------------------------------

    def get_translation(self, time: float) -> Vec3:
        return self.translation.sample(time).value

    def get_rotation(self, time: float) -> Angles:
        return self.rotation.sample(time).value

    # -- import / export ---------------------------------------------------

    def clear(self) -> None:
        for track in self._tracks():
            track.clear_points()

    def parse_sections(
        self,
        sections: Iterable[Section],
        *,
        time_offset: float = 0.0,
    ) -> tuple[list[TranslationPoint], list[RotationPoint], PlaybackMode | None, float | None]:
        """Map parsed file sections to keyframes without touching the timeline."""

        sections = list(sections)
        general = section_dict(sections, GENERAL_SECTION) or {}
        try:
            use_degrees = _parse_general_flag(general.get("UseDegrees"), True)
            mode = PlaybackMode.from_any(general["PlaybackMode"]) if "PlaybackMode" in general else None
            loop_offset = float(general["LoopTimeOffset"]) if "LoopTimeOffset" in general else None
        except ValueError as ex:
            raise TimelineIOError(f"Invalid [{GENERAL_SECTION}] section: {ex}") from ex
        if loop_offset is not None and (not np.isfinite(loop_offset) or loop_offset < 0.0):
            logger.warning("Ignoring invalid LoopTimeOffset=%r", general.get("LoopTimeOffset"))
            loop_offset = None

        conversion = float(np.pi / 180.0) if use_degrees else 1.0
        translations = self.translation.path.parse_sections(sections, time_offset=time_offset)
        rotations = self.rotation.path.parse_sections(sections, time_offset=time_offset, conversion=conversion)
        return translations, rotations, mode, loop_offset

    def import_sections(self, sections: Iterable[Section], *, time_offset: float = 0.0, append: bool = False) -> tuple[int, int]:
        translations, rotations, mode, loop_offset = self.parse_sections(sections, time_offset=time_offset)
        if not append:
            self.clear()
        if mode is not None:
            self.set_playback_mode(mode)
        if loop_offset is not None:
            self.set_loop_time_offset(loop_offset)
        for point in translations:
            self.translation.add_point(point)
        for point in rotations:
            self.rotation.add_point(point)
        return len(translations), len(rotations)

    def export_sections(self, *, use_degrees: bool = True) -> list[Section]:
        general = {
            "Version": str(FILE_FORMAT_VERSION),
            "UseDegrees": "1" if use_degrees else "0",
            "PlaybackMode": str(int(self.playback_mode)),
            "LoopTimeOffset": repr(float(self.loop_time_offset)),
        }
        conversion = float(180.0 / np.pi) if use_degrees else 1.0
        out: list[Section] = [(GENERAL_SECTION, general)]
        out.extend(self.translation.path.export_sections())
        out.extend(self.rotation.path.export_sections(conversion=conversion))
        return out
