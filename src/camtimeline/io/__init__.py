from __future__ import annotations

from .timeline_file import format_timeline_text, parse_timeline_text, read_timeline_file, write_timeline_file

__all__ = [
    "parse_timeline_text",
    "format_timeline_text",
    "read_timeline_file",
    "write_timeline_file",
]
