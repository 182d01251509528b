from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    OWNERSHIP_DENIED = "ownership_denied"
    INVALID_STATE = "invalid_state"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    IO_FAILURE = "io_failure"
    EMPTY_TIMELINE = "empty_timeline"


class TimelineError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_STATE


class TimelineNotFoundError(TimelineError, KeyError):
    kind = ErrorKind.NOT_FOUND

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class OwnershipDeniedError(TimelineError):
    kind = ErrorKind.OWNERSHIP_DENIED


class InvalidStateError(TimelineError):
    kind = ErrorKind.INVALID_STATE


class PathIndexError(TimelineError, IndexError):
    kind = ErrorKind.INDEX_OUT_OF_RANGE


class TimelineIOError(TimelineError):
    kind = ErrorKind.IO_FAILURE


class EmptyTimelineError(TimelineError):
    kind = ErrorKind.EMPTY_TIMELINE


_ERROR_TYPES: dict[ErrorKind, type[TimelineError]] = {
    ErrorKind.NOT_FOUND: TimelineNotFoundError,
    ErrorKind.OWNERSHIP_DENIED: OwnershipDeniedError,
    ErrorKind.INVALID_STATE: InvalidStateError,
    ErrorKind.INDEX_OUT_OF_RANGE: PathIndexError,
    ErrorKind.IO_FAILURE: TimelineIOError,
    ErrorKind.EMPTY_TIMELINE: EmptyTimelineError,
}


def error_type_for(kind: ErrorKind) -> type[TimelineError]:
    return _ERROR_TYPES[kind]


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a registry call.

    Registry entry points never raise for expected failures (unknown id, wrong owner,
    wrong state, bad index, file problems). They return a `Result` carrying either the
    payload or the failure kind plus a human-readable message.
    """

    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: T | None = None, message: str = "") -> "Result[T]":
        return cls(value=value, error=None, message=message)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(value=None, error=kind, message=message)

    @classmethod
    def from_error(cls, err: TimelineError) -> "Result[T]":
        return cls.failure(err.kind, str(err))

    def unwrap(self) -> T:
        if self.error is not None:
            raise error_type_for(self.error)(self.message)
        return self.value  # type: ignore[return-value]
