from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional

CATEGORY_TV = "tvshows"
CATEGORY_MOVIES = "movies"
CATEGORY_LIVE = "live"

# Output folder per category; these are the only directories reconciliation may touch.
CATEGORY_ROOTS: Dict[str, str] = {
    CATEGORY_TV: "TV Shows",
    CATEGORY_MOVIES: "Movies",
    CATEGORY_LIVE: "Live",
}

CATEGORY_ALIASES: Dict[str, str] = {
    "tvshows": CATEGORY_TV,
    "tvshow": CATEGORY_TV,
    "series": CATEGORY_TV,
    "movie": CATEGORY_MOVIES,
    "movies": CATEGORY_MOVIES,
    "live": CATEGORY_LIVE,
}

MARKER_SUFFIX = ".strm"

# Attribute names used by IPTV playlist providers
ATTR_TYPE = "tvg-type"
ATTR_GROUP = "group-title"
ATTR_NAME = "tvg-name"


def normalize_category(value: Optional[str]) -> Optional[str]:
    """Map a raw type hint onto a known category, or None when unrecognised."""
    if not value:
        return None
    return CATEGORY_ALIASES.get(value.strip().lower())


class MovieLayout(str, Enum):
    BY_YEAR = "by-year"
    FLAT = "flat"
    BY_FOLDER = "by-folder"

    @classmethod
    def parse(cls, value: "str | MovieLayout") -> "MovieLayout":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown movie layout '{value}' (expected one of: {choices})")


class RejectReason(str, Enum):
    LIVE_EXCLUDED = "live-excluded"
    UNSUPPORTED_TYPE = "unsupported-type"
    MISSING_EPISODE_MARKER = "missing-episode-marker"
    MISSING_SHOW_TITLE = "missing-show-title"
    ORPHAN_TARGET = "orphan-target"


REJECT_DETAILS: Dict[RejectReason, str] = {
    RejectReason.LIVE_EXCLUDED: "Live entries are excluded (include_live is off)",
    RejectReason.UNSUPPORTED_TYPE: "Unmatched or missing type",
    RejectReason.MISSING_EPISODE_MARKER: "No SxxEyy marker and no tvg-name for a TV entry",
    RejectReason.MISSING_SHOW_TITLE: "Could not derive a show title for a TV entry",
    RejectReason.ORPHAN_TARGET: "Target line without a preceding #EXTINF line",
}


@dataclass(frozen=True, slots=True)
class PlaylistEntry:
    attributes: Dict[str, str]
    display_name: str
    target: str

    @property
    def type_hint(self) -> str:
        return self.attributes.get(ATTR_TYPE, "")

    @property
    def group_title(self) -> str:
        return self.attributes.get(ATTR_GROUP, "")

    @property
    def tvg_name(self) -> str:
        return self.attributes.get(ATTR_NAME, "")


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    target: str
    relative_path: Optional[PurePosixPath] = None
    category: Optional[str] = None
    reason: Optional[RejectReason] = None

    @property
    def accepted(self) -> bool:
        return self.relative_path is not None

    @classmethod
    def accept(cls, target: str, category: str, *segments: str) -> "ClassificationResult":
        root = CATEGORY_ROOTS[category]
        return cls(target=target, relative_path=PurePosixPath(root, *segments), category=category)

    @classmethod
    def reject(cls, target: str, reason: RejectReason, category: Optional[str] = None) -> "ClassificationResult":
        return cls(target=target, category=category, reason=reason)


@dataclass(frozen=True)
class RunOptions:
    """Immutable configuration for a single conversion run."""

    include_live: bool = False
    overwrite: bool = False
    dry_run: bool = False
    movie_layout: MovieLayout = MovieLayout.BY_YEAR
    delete_missing: bool = False
    ignored_log_path: Optional[Path] = None
    default_category: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "movie_layout", MovieLayout.parse(self.movie_layout))
        if self.ignored_log_path is not None:
            object.__setattr__(self, "ignored_log_path", Path(self.ignored_log_path))


@dataclass(frozen=True, slots=True)
class WrittenEntry:
    path: Path
    target: str


@dataclass(frozen=True, slots=True)
class RunSummary:
    written: int = 0
    skipped: int = 0
    ignored: int = 0
    deleted: int = 0
    delete_failed: int = 0
    last_written: Optional[WrittenEntry] = None
    dry_run: bool = False

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        if self.last_written is not None:
            payload["last_written"] = {
                "path": str(self.last_written.path),
                "target": self.last_written.target,
            }
        return payload


@dataclass(slots=True)
class ConversionStats:
    written: int = 0
    skipped: int = 0
    ignored: int = 0
    deleted: int = 0
    delete_failed: int = 0
    last_written: Optional[WrittenEntry] = None
    ignored_by_reason: Dict[str, int] = field(default_factory=dict)
    written_by_category: Dict[str, int] = field(default_factory=dict)

    def register_written(self, path: Path, target: str, *, category: Optional[str] = None) -> None:
        self.written += 1
        self.last_written = WrittenEntry(path=path, target=target)
        if category:
            self.written_by_category[category] = self.written_by_category.get(category, 0) + 1

    def register_skipped(self) -> None:
        self.skipped += 1

    def register_ignored(self, reason: Optional[RejectReason] = None) -> None:
        self.ignored += 1
        if reason is not None:
            key = reason.value
            self.ignored_by_reason[key] = self.ignored_by_reason.get(key, 0) + 1

    def register_deleted(self, count: int = 1) -> None:
        self.deleted += count

    def register_delete_failure(self, count: int = 1) -> None:
        self.delete_failed += count

    def freeze(self, *, dry_run: bool = False) -> RunSummary:
        return RunSummary(
            written=self.written,
            skipped=self.skipped,
            ignored=self.ignored,
            deleted=self.deleted,
            delete_failed=self.delete_failed,
            last_written=self.last_written,
            dry_run=dry_run,
        )
