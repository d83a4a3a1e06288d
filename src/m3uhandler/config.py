from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .models import MovieLayout, RunOptions, normalize_category
from .utils import dump_yaml_file, env_bool, env_float, load_yaml_file, validate_url

CONFIG_ENV_VAR = "M3UHANDLER_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/m3uhandler/config.yaml")
DEFAULT_INTERVAL_HOURS = 24.0
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAX_PAGES = 50

# Providers split large TV catalogues across .../tvshows/1, .../tvshows/2, ...
PAGED_URL_PATTERN = re.compile(r"/tvshows/?$")


@dataclass
class SourceConfig:
    label: str
    url: str
    default_type: str | None = None
    paged: bool = False
    max_pages: int = DEFAULT_MAX_PAGES

    @property
    def paged_base_url(self) -> str:
        return self.url if self.url.endswith("/") else f"{self.url}/"


@dataclass
class Settings:
    output_dir: Path = Path("output")
    include_live: bool = False
    movie_layout: MovieLayout = MovieLayout.BY_YEAR
    overwrite: bool = True
    delete_missing: bool = True
    interval_hours: float = DEFAULT_INTERVAL_HOURS
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    ignored_log_dir: Path | None = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_hours * 60 * 60

    def run_options(self, source: SourceConfig, *, delete_missing: bool) -> RunOptions:
        ignored_log = None
        if self.ignored_log_dir is not None:
            ignored_log = self.ignored_log_dir / f"{source.label}-ignored.ndjson"
        return RunOptions(
            include_live=self.include_live,
            overwrite=self.overwrite,
            dry_run=False,
            movie_layout=self.movie_layout,
            delete_missing=delete_missing,
            ignored_log_path=ignored_log,
            default_category=source.default_type,
        )


@dataclass
class AppConfig:
    settings: Settings = field(default_factory=Settings)
    sources: list[SourceConfig] = field(default_factory=list)


def default_config_path() -> Path:
    raw = os.getenv(CONFIG_ENV_VAR)
    return Path(raw).expanduser() if raw else DEFAULT_CONFIG_PATH.expanduser()


def _positive_number(value: Any, *, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{field_name}' must be a number") from exc
    if number <= 0:
        raise ConfigError(f"'{field_name}' must be greater than 0")
    return number


def _build_source(data: Any, index: int) -> SourceConfig:
    prefix = f"sources[{index}]"
    if not isinstance(data, dict):
        raise ConfigError(f"'{prefix}' must be a mapping")

    url = data.get("url")
    if not isinstance(url, str) or not validate_url(url.strip()):
        raise ConfigError(f"'{prefix}.url' must be an http(s) URL")
    url = url.strip()

    label = str(data.get("label") or f"source-{index + 1}").strip()

    default_type = data.get("default_type")
    if default_type is not None:
        if normalize_category(str(default_type)) is None:
            raise ConfigError(f"'{prefix}.default_type' must be one of tvshows, movies, live")
        default_type = str(default_type).strip().lower()

    paged_raw = data.get("paged")
    paged = bool(PAGED_URL_PATTERN.search(url)) if paged_raw is None else bool(paged_raw)

    try:
        max_pages = int(data.get("max_pages", DEFAULT_MAX_PAGES))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{prefix}.max_pages' must be an integer") from exc
    if max_pages < 1:
        raise ConfigError(f"'{prefix}.max_pages' must be at least 1")

    return SourceConfig(label=label, url=url, default_type=default_type, paged=paged, max_pages=max_pages)


def _build_settings(data: Any) -> Settings:
    if not data:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("'settings' must be provided as a mapping when specified")

    try:
        movie_layout = MovieLayout.parse(data.get("movie_layout", MovieLayout.BY_YEAR.value))
    except ValueError as exc:
        raise ConfigError(f"'settings.movie_layout': {exc}") from exc
    if data.get("movies_flat"):
        movie_layout = MovieLayout.FLAT

    ignored_log_dir = data.get("ignored_log_dir")
    return Settings(
        output_dir=Path(str(data.get("output_dir", "output"))).expanduser(),
        include_live=bool(data.get("include_live", False)),
        movie_layout=movie_layout,
        overwrite=bool(data.get("overwrite", True)),
        delete_missing=bool(data.get("delete_missing", True)),
        interval_hours=_positive_number(
            data.get("interval_hours", DEFAULT_INTERVAL_HOURS), field_name="settings.interval_hours"
        ),
        fetch_timeout=_positive_number(
            data.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT), field_name="settings.fetch_timeout"
        ),
        ignored_log_dir=Path(str(ignored_log_dir)).expanduser() if ignored_log_dir else None,
    )


def _apply_env_overrides(settings: Settings) -> None:
    output_dir = os.getenv("M3UHANDLER_OUTPUT_DIR")
    if output_dir:
        settings.output_dir = Path(output_dir).expanduser()
    include_live = env_bool("M3UHANDLER_INCLUDE_LIVE")
    if include_live is not None:
        settings.include_live = include_live
    delete_missing = env_bool("M3UHANDLER_DELETE_MISSING")
    if delete_missing is not None:
        settings.delete_missing = delete_missing
    fetch_timeout = env_float("M3UHANDLER_FETCH_TIMEOUT")
    if fetch_timeout is not None and fetch_timeout > 0:
        settings.fetch_timeout = fetch_timeout


def build_config(data: dict[str, Any]) -> AppConfig:
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")
    settings = _build_settings(data.get("settings"))
    _apply_env_overrides(settings)

    sources_raw = data.get("sources", []) or []
    if not isinstance(sources_raw, list):
        raise ConfigError("'sources' must be provided as a list")
    sources = [_build_source(item, index) for index, item in enumerate(sources_raw)]

    labels = [source.label for source in sources]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate source labels: {', '.join(duplicates)}")

    return AppConfig(settings=settings, sources=sources)


def load_config(path: Path) -> AppConfig:
    try:
        data = load_yaml_file(path)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    return build_config(data)


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    settings = config.settings
    payload: dict[str, Any] = {
        "settings": {
            "output_dir": str(settings.output_dir),
            "include_live": settings.include_live,
            "movie_layout": settings.movie_layout.value,
            "overwrite": settings.overwrite,
            "delete_missing": settings.delete_missing,
            "interval_hours": settings.interval_hours,
            "fetch_timeout": settings.fetch_timeout,
        },
        "sources": [],
    }
    if settings.ignored_log_dir is not None:
        payload["settings"]["ignored_log_dir"] = str(settings.ignored_log_dir)
    for source in config.sources:
        item: dict[str, Any] = {"label": source.label, "url": source.url}
        if source.default_type:
            item["default_type"] = source.default_type
        if source.paged:
            item["paged"] = True
            item["max_pages"] = source.max_pages
        payload["sources"].append(item)
    return payload


def save_config(config: AppConfig, path: Path) -> Path:
    """Write ``config`` as YAML readable only by the current user (it embeds credentials)."""
    dump_yaml_file(path, config_to_dict(config), mode=0o600)
    return path
