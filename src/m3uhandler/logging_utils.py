from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Optional, Union
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]

URL_CREDENTIALS_PATTERN = re.compile(r"//([^/:@\s]+):([^@\s]+)@")
CREDENTIAL_QUERY_KEYS = frozenset({"user", "username", "pass", "password", "token"})
QUERY_CREDENTIALS_PATTERN = re.compile(
    r"(?<=[?&])(" + "|".join(sorted(CREDENTIAL_QUERY_KEYS)) + r")=[^&#\s]+", re.IGNORECASE
)
REDACTED = "***"


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    """Render ``fields`` as an aligned ``Label: value`` block under ``title``."""
    items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
    lines: list[str] = [""] if pad_top else []
    lines.append(title)
    lines.append("-" * len(title))
    if not items:
        return "\n".join(lines).rstrip()

    label_width = max(min(max(len(str(key)) for key, _ in items), DEFAULT_LABEL_WIDTH), 8)
    value_width = max(DEFAULT_WRAP_WIDTH - len(DEFAULT_INDENT) - label_width - 4, 32)
    for key, value in items:
        wrapped = wrap(_stringify(value), width=value_width) or [""]
        lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {wrapped[0]}")
        lines.extend(f"{DEFAULT_INDENT}{'':<{label_width}}  {rest}" for rest in wrapped[1:])
    return "\n".join(lines).rstrip()


def redact_url(url: str) -> str:
    """Mask the credentials of ``url`` while keeping the rest readable.

    Covers ``user:pass@host`` userinfo and credential query parameters such as
    ``?username=..&password=..``.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    query = _redact_query(parts.query)
    if not parts.username and not parts.password:
        if query == parts.query:
            return url
        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    userinfo = REDACTED if parts.password is None else f"{REDACTED}:{REDACTED}"
    return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, query, parts.fragment))


def _redact_query(query: str) -> str:
    if not query:
        return query
    return QUERY_CREDENTIALS_PATTERN.sub(lambda match: f"{match.group(1)}={REDACTED}", f"?{query}")[1:]


def secrets_from_urls(urls: Iterable[str]) -> list[str]:
    """Collect the userinfo and credential query values embedded in ``urls``."""
    secrets: list[str] = []
    for url in urls:
        try:
            parts = urlsplit(url)
        except ValueError:
            continue
        secrets.extend(value for value in (parts.username, parts.password) if value)
        secrets.extend(
            value for key, value in parse_qsl(parts.query) if key.lower() in CREDENTIAL_QUERY_KEYS and value
        )
    return secrets


def redact_secrets(message: object, secrets: Iterable[str] = ()) -> str:
    """Strip URL credentials and any known secret strings from a log message."""
    text = URL_CREDENTIALS_PATTERN.sub(f"//{REDACTED}:{REDACTED}@", str(message or ""))
    text = QUERY_CREDENTIALS_PATTERN.sub(lambda match: f"{match.group(1)}={REDACTED}", text)
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def configure_logging(
    level: int = logging.INFO,
    *,
    log_file: Optional[Path] = None,
    console_level: Optional[int] = None,
    console: Optional[Console] = None,
) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(console_level if console_level is not None else level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    effective = min(level, console_level) if console_level is not None else level
    root.setLevel(effective)
    logging.getLogger("urllib3").setLevel(max(effective, logging.WARNING))
