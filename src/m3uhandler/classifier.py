"""Entry classification and output path building.

This module maps a parsed playlist entry onto one of the category roots
(``TV Shows``, ``Movies``, ``Live``) and builds the relative ``.strm`` path for
it. Every path segment passes through ``sanitize_segment`` so the result can
never escape the output root. Rejections are returned, never raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import (
    CATEGORY_LIVE,
    CATEGORY_MOVIES,
    CATEGORY_TV,
    MARKER_SUFFIX,
    ClassificationResult,
    MovieLayout,
    PlaylistEntry,
    RejectReason,
    RunOptions,
    normalize_category,
)
from .utils import WHITESPACE_PATTERN, sanitize_or, sanitize_segment

EPISODE_MARKER_PATTERN = re.compile(r"\bS(\d{1,2})\s*E(\d{1,3})\b", re.IGNORECASE)
TRAILING_YEAR_PATTERN = re.compile(r"\((\d{4})\)\s*$")
YEAR_TOKEN_PATTERN = re.compile(r"(?<!\d)(\d{4})(?!\d)")

UNKNOWN_YEAR = "Unknown"
UNKNOWN_MOVIE = "Unknown Movie"
UNKNOWN_SHOW = "Unknown Show"
UNKNOWN_CHANNEL = "Unknown Channel"
DEFAULT_LIVE_GROUP = "Live"


@dataclass(frozen=True, slots=True)
class EpisodeInfo:
    show_base: str
    season: Optional[str] = None
    episode: Optional[str] = None

    @property
    def tag(self) -> Optional[str]:
        if self.season is None or self.episode is None:
            return None
        return f"S{self.season}E{self.episode}"


def parse_year_from_title(title: str) -> Optional[str]:
    match = TRAILING_YEAR_PATTERN.search(title)
    return match.group(1) if match else None


def parse_year_from_group(group_title: str) -> Optional[str]:
    match = YEAR_TOKEN_PATTERN.search(group_title)
    return match.group(1) if match else None


def resolve_movie_year(display_name: str, group_title: str) -> str:
    """Return the year for a movie entry.

    A trailing ``(YYYY)`` in the display name wins over any year found in the
    group label; without either the ``Unknown`` placeholder is used.
    """
    return parse_year_from_title(display_name) or parse_year_from_group(group_title) or UNKNOWN_YEAR


def _pad(number: str) -> str:
    return str(int(number)).zfill(2)


def parse_episode_info(display_name: str, group_title: str) -> EpisodeInfo:
    """Extract show base, season and episode from a TV display name.

    A group label ending in ``(YYYY)`` is treated as the canonical show name;
    otherwise the display name minus its ``SxxEyy`` marker is used.
    """
    match = EPISODE_MARKER_PATTERN.search(display_name)

    if group_title and TRAILING_YEAR_PATTERN.search(group_title):
        show_base = group_title.strip()
    elif match:
        remainder = display_name[: match.start()] + " " + display_name[match.end() :]
        show_base = WHITESPACE_PATTERN.sub(" ", remainder).strip()
    else:
        show_base = display_name.strip()

    if not match:
        return EpisodeInfo(show_base=show_base)
    return EpisodeInfo(show_base=show_base, season=_pad(match.group(1)), episode=_pad(match.group(2)))


def _marker_filename(name: str) -> str:
    return f"{name}{MARKER_SUFFIX}"


def classify_tv(entry: PlaylistEntry) -> ClassificationResult:
    info = parse_episode_info(entry.display_name, entry.group_title)

    if info.tag is None:
        # Unparsable but named episodes still get a flat file inside the show folder
        tvg_name = sanitize_segment(entry.tvg_name)
        if tvg_name:
            show_folder = sanitize_segment(info.show_base) or sanitize_or(entry.group_title, UNKNOWN_SHOW)
            return ClassificationResult.accept(entry.target, CATEGORY_TV, show_folder, _marker_filename(tvg_name))
        return ClassificationResult.reject(entry.target, RejectReason.MISSING_EPISODE_MARKER, CATEGORY_TV)

    show_folder = sanitize_segment(info.show_base)
    if not show_folder:
        return ClassificationResult.reject(entry.target, RejectReason.MISSING_SHOW_TITLE, CATEGORY_TV)

    season_folder = f"Season {info.season}"
    filename = sanitize_segment(f"{info.show_base} {info.tag}")
    return ClassificationResult.accept(
        entry.target,
        CATEGORY_TV,
        show_folder,
        season_folder,
        _marker_filename(filename),
    )


def classify_movie(entry: PlaylistEntry, layout: MovieLayout) -> ClassificationResult:
    year = resolve_movie_year(entry.display_name, entry.group_title)
    title = sanitize_segment(entry.display_name) or sanitize_or(entry.tvg_name, UNKNOWN_MOVIE)
    filename = _marker_filename(title)

    if layout is MovieLayout.FLAT:
        return ClassificationResult.accept(entry.target, CATEGORY_MOVIES, filename)
    if layout is MovieLayout.BY_FOLDER:
        return ClassificationResult.accept(entry.target, CATEGORY_MOVIES, title, filename)
    return ClassificationResult.accept(entry.target, CATEGORY_MOVIES, year, filename)


def classify_live(entry: PlaylistEntry, include_live: bool) -> ClassificationResult:
    if not include_live:
        return ClassificationResult.reject(entry.target, RejectReason.LIVE_EXCLUDED, CATEGORY_LIVE)
    channel = sanitize_segment(entry.display_name) or sanitize_or(entry.tvg_name, UNKNOWN_CHANNEL)
    group = sanitize_or(entry.group_title, DEFAULT_LIVE_GROUP)
    return ClassificationResult.accept(entry.target, CATEGORY_LIVE, group, _marker_filename(channel))


def resolve_category(entry: PlaylistEntry, default_category: Optional[str]) -> Optional[str]:
    """Return the entry's category, falling back to ``default_category`` when the type is absent."""
    if entry.type_hint.strip():
        return normalize_category(entry.type_hint)
    return normalize_category(default_category)


def classify_entry(entry: PlaylistEntry, options: RunOptions) -> ClassificationResult:
    """Classify ``entry`` into a relative output path or a rejection."""
    category = resolve_category(entry, options.default_category)
    if category == CATEGORY_TV:
        return classify_tv(entry)
    if category == CATEGORY_MOVIES:
        return classify_movie(entry, options.movie_layout)
    if category == CATEGORY_LIVE:
        return classify_live(entry, options.include_live)
    return ClassificationResult.reject(entry.target, RejectReason.UNSUPPORTED_TYPE)


__all__ = [
    "EPISODE_MARKER_PATTERN",
    "EpisodeInfo",
    "classify_entry",
    "classify_live",
    "classify_movie",
    "classify_tv",
    "parse_episode_info",
    "parse_year_from_group",
    "parse_year_from_title",
    "resolve_category",
    "resolve_movie_year",
]
