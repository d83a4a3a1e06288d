"""Line-oriented M3U playlist parsing.

The parser is a two-state machine: it waits for an ``#EXTINF:`` metadata line
and pairs it with the next non-comment, non-blank line (the stream target).
Orphaned metadata lines are silently replaced by the next one; targets that
appear without metadata are reported to the caller and otherwise dropped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Dict, Optional, Tuple

from .errors import InputNotFoundError
from .models import PlaylistEntry

LOGGER = logging.getLogger(__name__)

EXTINF_PREFIX = "#EXTINF:"
ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)="([^"]*)"')

OrphanCallback = Callable[[int, str], None]


def parse_extinf(line: str) -> Tuple[Dict[str, str], str]:
    """Split an ``#EXTINF`` line into its attributes and display name.

    The line is split at the last comma. Attribute values may contain commas,
    but embedded quotes are not supported.
    """
    comma_index = line.rfind(",")
    if comma_index >= 0:
        display_name = line[comma_index + 1 :].strip()
        attribute_part = line[:comma_index]
    else:
        display_name = ""
        attribute_part = line

    attributes: Dict[str, str] = {}
    for key, value in ATTRIBUTE_PATTERN.findall(attribute_part):
        attributes[key] = value
    return attributes, display_name


class PlaylistLineParser:
    """Pairs metadata lines with their target lines."""

    def __init__(self, on_orphan: Optional[OrphanCallback] = None) -> None:
        self._pending: Optional[str] = None
        self._on_orphan = on_orphan
        self.orphans = 0

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    def feed(self, raw_line: str, line_number: int = 0) -> Optional[Tuple[str, str]]:
        line = raw_line.strip()
        if not line:
            return None

        if line.startswith(EXTINF_PREFIX):
            if self._pending is not None:
                LOGGER.debug("Discarding unterminated metadata line before line %d", line_number)
            self._pending = line
            return None

        if line.startswith("#"):
            return None

        if self._pending is None:
            self.orphans += 1
            if self._on_orphan is not None:
                self._on_orphan(line_number, line)
            return None

        metadata = self._pending
        self._pending = None
        return metadata, line

    def parse_lines(self, lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
        for line_number, raw_line in enumerate(lines, start=1):
            pair = self.feed(raw_line, line_number)
            if pair is not None:
                yield pair


def iter_playlist_lines(path: Path) -> Iterator[str]:
    """Yield raw lines from ``path``, raising ``InputNotFoundError`` up front."""
    if not path.exists():
        raise InputNotFoundError(path)
    return _read_lines(path)


def _read_lines(path: Path) -> Iterator[str]:
    with path.open("r", encoding="utf-8-sig", errors="replace") as handle:
        yield from handle


def iter_playlist_entries(
    path: Path,
    on_orphan: Optional[OrphanCallback] = None,
) -> Iterator[PlaylistEntry]:
    """Lazily parse ``path`` into ``PlaylistEntry`` objects in file order."""
    lines = iter_playlist_lines(path)
    parser = PlaylistLineParser(on_orphan=on_orphan)
    return _build_entries(parser.parse_lines(lines))


def _build_entries(pairs: Iterable[Tuple[str, str]]) -> Iterator[PlaylistEntry]:
    for metadata, target in pairs:
        attributes, display_name = parse_extinf(metadata)
        yield PlaylistEntry(attributes=attributes, display_name=display_name, target=target)


__all__ = [
    "EXTINF_PREFIX",
    "PlaylistLineParser",
    "iter_playlist_entries",
    "iter_playlist_lines",
    "parse_extinf",
]
