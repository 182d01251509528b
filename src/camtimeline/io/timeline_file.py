from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import TimelineIOError
from ..core.path import Section

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = (";", "#")


def _strip_inline_comment(value: str) -> str:
    for prefix in COMMENT_PREFIXES:
        pos = value.find(prefix)
        if pos >= 0:
            value = value[:pos]
    return value.strip()


def parse_timeline_text(text: str) -> list[Section]:
    """Parse the INI-like timeline format into ordered `(name, data)` sections.

    Section names may repeat (one `[TranslatePoint]` per keyframe), so sections are
    returned as a list in file order rather than a mapping. Keys outside any section
    are ignored.
    """

    sections: list[Section] = []
    current: dict[str, str] | None = None
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue
        if line.startswith("["):
            if not line.endswith("]") or len(line) < 3:
                raise TimelineIOError(f"Malformed section header on line {lineno}: {raw!r}")
            current = {}
            sections.append((line[1:-1].strip(), current))
            continue
        if "=" not in line:
            logger.warning("Ignoring line %d without '=': %r", lineno, raw)
            continue
        if current is None:
            logger.warning("Ignoring key outside any section on line %d", lineno)
            continue
        key, value = line.split("=", 1)
        current[key.strip()] = _strip_inline_comment(value)
    return sections


def format_timeline_text(sections: list[Section]) -> str:
    lines: list[str] = []
    for name, data in sections:
        lines.append(f"[{name}]")
        for key, value in data.items():
            lines.append(f"{key}={value}")
        lines.append("")
    return "\n".join(lines)


def read_timeline_file(path: str | Path) -> list[Section]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as ex:
        raise TimelineIOError(f"Failed to read timeline file {p}: {ex}") from ex
    except UnicodeDecodeError as ex:
        raise TimelineIOError(f"Timeline file {p} is not valid UTF-8") from ex
    return parse_timeline_text(text)


def write_timeline_file(path: str | Path, sections: list[Section]) -> None:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(format_timeline_text(sections), encoding="utf-8")
    except OSError as ex:
        raise TimelineIOError(f"Failed to write timeline file {p}: {ex}") from ex
