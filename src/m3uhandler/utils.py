from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml


# Characters rejected by the most restrictive supported filesystem (NTFS/SMB shares)
DISALLOWED_SEGMENT_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
WHITESPACE_PATTERN = re.compile(r"\s+")

# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def sanitize_segment(value: str) -> str:
    """Return ``value`` as a single filesystem-safe path segment.

    Disallowed characters become a space, whitespace runs collapse to one
    space and the result is trimmed. A result consisting solely of dots is
    returned as an empty string so callers fall back to their own literal
    instead of producing ``.`` or ``..`` segments.
    """
    if not value:
        return ""
    cleaned = DISALLOWED_SEGMENT_PATTERN.sub(" ", value)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    if cleaned and not cleaned.strip("."):
        return ""
    return cleaned


def sanitize_or(value: Optional[str], fallback: str) -> str:
    """Sanitize ``value`` and substitute ``fallback`` when nothing usable remains."""
    return sanitize_segment(value or "") or fallback


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return expand_env(data)


def dump_yaml_file(path: Path, data: Dict[str, Any], *, mode: Optional[int] = None) -> None:
    ensure_directory(path.parent)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False, allow_unicode=True)
    if mode is not None:
        os.chmod(path, mode)


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean from an environment variable string.

    Returns None if value is None or not a recognized boolean string.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    return parse_env_bool(os.getenv(name))


def env_float(name: str) -> Optional[float]:
    """Get a float from an environment variable, ignoring unparsable values."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def validate_url(url: Optional[str]) -> bool:
    """Validate that URL is a valid http/https URL."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def url_host(url: Optional[str]) -> str:
    """Return only the host portion of ``url`` for display purposes."""
    if not url:
        return "(none)"
    try:
        parsed = urlparse(url)
    except ValueError:
        return "(invalid)"
    return parsed.hostname or "(invalid)"
