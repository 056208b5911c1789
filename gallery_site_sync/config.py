"""Configuration loading and per-run state for the gallery site synchronizer."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv


class ConfigError(Exception):
    """Base exception for configuration issues."""


class MissingEnvError(ConfigError):
    """Raised when required environment variables are missing."""


class ConfigFileError(ConfigError):
    """Raised when the JSON config file is invalid."""


load_dotenv()

CONFIG_ENV = os.getenv("GALLERY_SYNC_CONFIG_PATH", "sync_config.json")
CONFIG_PATH = CONFIG_ENV

GALLERY_JSON_VERSION = 1
SNAPSHOT_FILE_NAME = "site.json"
DEFAULT_MAX_DAILY_UPLOADS = 8000
DEFAULT_MAX_PHOTOS_PER_KEYWORD = 1000
DEFAULT_RETRIES = 5
DEFAULT_RETRY_SLEEP_SECONDS = 5
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 600
DEFAULT_HIDDEN_PATHS = ["/albums/private/"]

DEFAULT_EVENTS: List[Dict[str, str]] = [
    {
        "name": "Linkfest",
        "pattern": r"^/albums/(\d{4})/(\d{4})-(\d{2})-(\d{2})-(linkfest-harlow)-",
        "description": "[Linkfest](http://www.linkfestharlow.co.uk/), a free music festival in Harlow Town Park at the bandstand.",
    },
    {
        "name": "Barleylands - Essex Country Show",
        "pattern": r"^/albums/(\d{4})/(\d{4})-(\d{2})-(\d{2})-(barleylands-essex-country-show)-",
        "description": "[Essex Country show](http://www.barleylands.co.uk/essex-country-show) at Barleylands, Billericay.",
    },
    {
        "name": "Moreton Boxing Day Tug Of War",
        "pattern": r"^/albums/(\d{4})/(\d{4})-(\d{2})-(\d{2})-(moreton-boxing-day-tug-of-war)-",
        "description": "The annual tug-of war over the Cripsey Brook at Moreton, Essex.",
    },
    {
        "name": "Greenwich Tall Ships Festival",
        "pattern": r"^/albums/(\d{4})/(\d{4})-(\d{2})-(\d{2})-(greenwich-tall-ships-festival)-",
        "description": "",
    },
    {
        "name": "Rock School - Lets Rock The Park",
        "pattern": r"^/albums/(\d{4})/(\d{4})-(\d{2})-(\d{2})-(rock-school-lets-rock-the-park)-",
        "description": "",
    },
]


def _resolve_config_path(path: str) -> str:
    """Resolve a config path: try as given, then relative to repo root when missing.

    Absolute paths are returned unchanged. Relative paths prefer the cwd
    location, then the repository root (parent of the package directory).
    The cwd candidate is returned when neither exists so callers can report
    the attempted location.
    """
    if os.path.isabs(path):
        return path
    cwd_candidate = os.path.abspath(path)
    if os.path.exists(cwd_candidate):
        return cwd_candidate
    pkg_dir = os.path.dirname(__file__)
    repo_root = os.path.abspath(os.path.join(pkg_dir, os.pardir))
    repo_candidate = os.path.join(repo_root, path)
    if os.path.exists(repo_candidate):
        return repo_candidate
    return cwd_candidate


def _coerce_list(value: object) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str):
        return [token.strip() for token in value.split(",") if token.strip()]
    return []


def _coerce_positive_int(value: object, default: int, label: str) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        print(f"⚠️ Invalid {label}; using {default} instead")
        return default
    if number <= 0:
        print(f"⚠️ {label} must be positive; using {default} instead")
        return default
    return number


@dataclass
class SiteSettings:
    title: str
    description: str

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "SiteSettings":
        title = str(data.get("title") or "Photo Gallery").strip()
        description = str(data.get("description") or "").strip()
        return cls(title=title, description=description)


@dataclass
class PathSettings:
    database_input_folder: str
    output_folder: str
    queue_folder: str

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "PathSettings":
        database_input = os.path.normpath(str(data.get("database_input_folder") or "database"))
        output = os.path.normpath(str(data.get("output_folder") or "output"))
        queue = os.path.normpath(str(data.get("queue_folder") or os.path.join(output, "queue")))
        return cls(database_input_folder=database_input, output_folder=output, queue_folder=queue)

    @property
    def snapshot_path(self) -> str:
        return os.path.join(self.output_folder, SNAPSHOT_FILE_NAME)


@dataclass
class UploadSettings:
    base_url: str
    max_daily_uploads: int
    max_retries: int
    retry_sleep_seconds: float
    timeout_seconds: float

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "UploadSettings":
        base_url = os.getenv("GALLERY_SYNC_BASE_URL") or str(data.get("base_url") or "")
        base_url = base_url.strip()
        if not base_url:
            raise MissingEnvError("GALLERY_SYNC_BASE_URL (or upload.base_url in the config file) is required")
        retry_sleep_raw = data.get("retry_sleep_seconds", DEFAULT_RETRY_SLEEP_SECONDS)
        try:
            retry_sleep = max(0.0, float(retry_sleep_raw))
        except (TypeError, ValueError):
            print("⚠️ Invalid upload.retry_sleep_seconds; using default")
            retry_sleep = float(DEFAULT_RETRY_SLEEP_SECONDS)
        return cls(
            base_url=base_url,
            max_daily_uploads=_coerce_positive_int(
                data.get("max_daily_uploads"), DEFAULT_MAX_DAILY_UPLOADS, "upload.max_daily_uploads"
            ),
            max_retries=_coerce_positive_int(data.get("max_retries"), DEFAULT_RETRIES, "upload.max_retries"),
            retry_sleep_seconds=retry_sleep,
            timeout_seconds=float(
                _coerce_positive_int(data.get("timeout_seconds"), DEFAULT_UPLOAD_TIMEOUT_SECONDS, "upload.timeout_seconds")
            ),
        )


@dataclass
class IndexSettings:
    max_photos_per_keyword: int
    ingest_workers: Optional[int]
    hidden_paths: List[str] = field(default_factory=lambda: list(DEFAULT_HIDDEN_PATHS))

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "IndexSettings":
        workers_raw = data.get("ingest_workers")
        workers: Optional[int] = None
        if workers_raw is not None:
            workers = _coerce_positive_int(workers_raw, 1, "index.ingest_workers")
        hidden = _coerce_list(data.get("hidden_paths")) if "hidden_paths" in data else list(DEFAULT_HIDDEN_PATHS)
        hidden = [path if path.endswith("/") else f"{path}/" for path in hidden]
        return cls(
            max_photos_per_keyword=_coerce_positive_int(
                data.get("max_photos_per_keyword"), DEFAULT_MAX_PHOTOS_PER_KEYWORD, "index.max_photos_per_keyword"
            ),
            ingest_workers=workers,
            hidden_paths=hidden,
        )


@dataclass
class EventDesc:
    name: str
    pattern: "re.Pattern[str]"
    description: str

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "EventDesc":
        name = str(data.get("name") or "").strip()
        pattern_text = str(data.get("pattern") or "").strip()
        if not name or not pattern_text:
            raise ConfigFileError("Each event needs both 'name' and 'pattern'")
        try:
            pattern = re.compile(pattern_text, re.IGNORECASE)
        except re.error as exc:
            raise ConfigFileError(f"Invalid pattern for event '{name}': {exc}") from exc
        if pattern.groups < 5:
            raise ConfigFileError(
                f"Pattern for event '{name}' must capture (album year, year, month, day, slug)"
            )
        return cls(name=name, pattern=pattern, description=str(data.get("description") or ""))


def _build_events(raw_events: object) -> List[EventDesc]:
    if raw_events is None:
        raw_events = DEFAULT_EVENTS
    if not isinstance(raw_events, list):
        print("⚠️ events must be a list of objects; using the built-in event table")
        raw_events = DEFAULT_EVENTS
    return [EventDesc.from_json(entry) for entry in raw_events if isinstance(entry, dict)]


@dataclass
class AppConfig:
    site: SiteSettings
    paths: PathSettings
    upload: UploadSettings
    index: IndexSettings
    events: List[EventDesc]


@dataclass
class RunState:
    """Mutable bookkeeping owned by a single pipeline run."""

    ignore_existing: bool = False
    no_limit: bool = False
    anomalies: List[object] = field(default_factory=list)
    removed_keywords: List[str] = field(default_factory=list)

    def record_anomaly(self, anomaly: object) -> None:
        self.anomalies.append(anomaly)


def _load_json_config(path: str = CONFIG_PATH) -> Dict[str, object]:
    resolved = _resolve_config_path(path)
    try:
        with open(resolved, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        tried = [os.path.abspath(path), resolved]
        tried_unique = []
        for p in tried:
            if p not in tried_unique:
                tried_unique.append(p)
        print(f"⚠️  Config file not found (tried): {', '.join(tried_unique)}; continuing with defaults")
        return {}
    except json.JSONDecodeError as exc:
        raise ConfigFileError(f"Invalid JSON in config file '{resolved}': {exc}") from exc


def load_app_config(path: str | None = None) -> AppConfig:
    data = _load_json_config(path or CONFIG_PATH)
    if not isinstance(data, dict):
        raise ConfigFileError("Config file must contain a JSON object")
    return AppConfig(
        site=SiteSettings.from_json(data.get("site", {})),
        paths=PathSettings.from_json(data.get("paths", {})),
        upload=UploadSettings.from_json(data.get("upload", {})),
        index=IndexSettings.from_json(data.get("index", {})),
        events=_build_events(data.get("events")),
    )


def build_run_state(*, ignore_existing: bool = False, no_limit: bool = False) -> RunState:
    return RunState(ignore_existing=ignore_existing, no_limit=no_limit)


__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigFileError",
    "DEFAULT_EVENTS",
    "DEFAULT_HIDDEN_PATHS",
    "EventDesc",
    "GALLERY_JSON_VERSION",
    "IndexSettings",
    "MissingEnvError",
    "PathSettings",
    "RunState",
    "SiteSettings",
    "UploadSettings",
    "build_run_state",
    "load_app_config",
]
