from __future__ import annotations

from pathlib import Path
from typing import Optional


class M3UHandlerError(Exception):
    """Base error for the project."""


class InputNotFoundError(M3UHandlerError, FileNotFoundError):
    """Raised when the playlist to convert does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Input file not found: {path}")
        self.path = path


class ConfigError(M3UHandlerError, ValueError):
    """Raised when the YAML configuration is invalid."""


class PlaylistFetchError(M3UHandlerError):
    """Raised when a playlist URL cannot be fetched."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PageNotFoundError(PlaylistFetchError):
    """Raised when the provider answers 404, which ends a paged fetch."""
