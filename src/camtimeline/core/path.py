from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import Generic, Iterable, Mapping, TypeVar

from .camera import CameraSink
from .errors import PathIndexError, TimelineIOError
from .interpolation import POINT_EPSILON
from .points import KeyframePoint, PointKind, RotationPoint, TranslationPoint

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=KeyframePoint)

Section = tuple[str, dict[str, str]]


class KeyframePath(Generic[P]):
    """Keyframes kept sorted ascending by transition time.

    Indices are only meaningful until the next mutation. Every mutation bumps
    `revision`, so a caller holding an index can detect that it went stale.
    """

    def __init__(self, point_type: type[P]) -> None:
        self.point_type = point_type
        self._points: list[P] = []
        self._times: list[float] = []
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    def point_count(self) -> int:
        return len(self._points)

    def points(self) -> tuple[P, ...]:
        return tuple(self._points)

    def _bump(self) -> None:
        self._revision += 1

    def _insert_locked(self, point: P) -> int:
        if point.time < 0.0:
            point = point.with_time(0.0)
        # Equal times keep insertion order: the new point goes after existing ones.
        idx = bisect_right(self._times, point.time)
        self._points.insert(idx, point)
        self._times.insert(idx, point.time)
        return idx

    def add_point(self, point: P) -> int:
        idx = self._insert_locked(point)
        self._bump()
        return idx

    def get_point(self, index: int, *, expected_revision: int | None = None) -> P:
        if expected_revision is not None and int(expected_revision) != self._revision:
            raise PathIndexError(
                f"Point index {index} is stale (path revision {self._revision}, expected {expected_revision})"
            )
        i = int(index)
        if i < 0 or i >= len(self._points):
            raise PathIndexError(f"Point index {i} out of range (count={len(self._points)})")
        return self._points[i]

    def edit_point(self, index: int, point: P) -> int:
        current = self.get_point(index)
        i = int(index)
        if point.time < 0.0:
            point = point.with_time(0.0)
        if abs(point.time - current.time) < POINT_EPSILON:
            # Keep the stored time so ties stay ordered as before.
            self._points[i] = point.with_time(current.time)
            self._bump()
            return i
        del self._points[i]
        del self._times[i]
        idx = self._insert_locked(point)
        self._bump()
        return idx

    def remove_point(self, index: int) -> bool:
        i = int(index)
        if i < 0 or i >= len(self._points):
            return False
        del self._points[i]
        del self._times[i]
        self._bump()
        return True

    def clear_path(self) -> None:
        self._points.clear()
        self._times.clear()
        self._bump()

    def first_index_at_or_after(self, time: float) -> int:
        return bisect_left(self._times, float(time))

    def last_time(self) -> float:
        if not self._times:
            return 0.0
        return self._times[-1]

    def update_live_points(self, camera: CameraSink | None) -> int:
        """Refresh CAMERA and REFERENCE points from the live scene.

        Times never change here, so ordering and indices stay valid and the
        revision is not bumped.
        """

        refreshed = 0
        for i, point in enumerate(self._points):
            kind = getattr(point, "kind", PointKind.WORLD)
            if kind == PointKind.WORLD:
                continue
            self._points[i] = point.resolve(camera)
            refreshed += 1
        return refreshed

    def update_reference_points(self) -> int:
        refreshed = 0
        for i, point in enumerate(self._points):
            if getattr(point, "kind", PointKind.WORLD) == PointKind.REFERENCE:
                self._points[i] = point.resolve(None)
                refreshed += 1
        return refreshed

    def parse_sections(
        self,
        sections: Iterable[Section],
        *,
        time_offset: float = 0.0,
        conversion: float = 1.0,
    ) -> list[P]:
        """Map this path's sections to points without touching the path."""

        out: list[P] = []
        name = self.point_type.SECTION_NAME
        for section_name, data in sections:
            if section_name != name:
                continue
            if "Time" not in data:
                logger.warning("Skipping [%s] section without a Time key", name)
                continue
            try:
                point = self.point_type.from_section(data, time_offset=time_offset, conversion=conversion)
            except ValueError as ex:
                raise TimelineIOError(f"Invalid [{name}] section: {ex}") from ex
            logger.debug("Parsed %s at t=%.3f", name, point.time)
            out.append(point)
        return out

    def import_sections(
        self,
        sections: Iterable[Section],
        *,
        time_offset: float = 0.0,
        conversion: float = 1.0,
    ) -> int:
        points = self.parse_sections(sections, time_offset=time_offset, conversion=conversion)
        for point in points:
            self._insert_locked(point)
        if points:
            self._bump()
        return len(points)

    def export_sections(self, *, conversion: float = 1.0) -> list[Section]:
        name = self.point_type.SECTION_NAME
        return [(name, point.to_section(conversion=conversion)) for point in self._points]


class TranslationPath(KeyframePath[TranslationPoint]):
    def __init__(self) -> None:
        super().__init__(TranslationPoint)


class RotationPath(KeyframePath[RotationPoint]):
    def __init__(self) -> None:
        super().__init__(RotationPoint)


def section_dict(sections: Iterable[Section], name: str) -> Mapping[str, str] | None:
    for section_name, data in sections:
        if section_name == name:
            return data
    return None
