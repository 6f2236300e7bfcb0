"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_EXPORT_FOLDER,
    DEFAULT_EXPORT_PREFIX,
    DEFAULT_FETCH_BACKEND,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_SELENIUM_WAIT_SECONDS,
    DEFAULT_SORT_QUERY_PARAMS,
    DEFAULT_STRIP_WWW,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .errors import InvalidSeedError
from .types import FetchBackend, JSONDict


def _number(kind: type, value: Any, key: str) -> Any:
    # bool is an int subclass; `depth: true` is a typo, not a depth of 1.
    if isinstance(value, bool):
        raise ValueError(f"Invalid {kind.__name__} for '{key}': {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid {kind.__name__} for '{key}': {value!r}") from exc


def _flag(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Invalid bool for '{key}': {value!r}")
    return value


def _headers(value: Any, key: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid header mapping for '{key}': {value!r}")
    return {str(name): str(header) for name, header in value.items()}


def _to_backend(value: Any, key: str = "backend") -> FetchBackend:
    if isinstance(value, FetchBackend):
        return value
    try:
        return FetchBackend(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Invalid backend for '{key}': {value!r}") from exc


# Older config files and the CLI use the short names.
_KEY_ALIASES = {"url": "seed_url", "depth": "max_depth"}

# A null value falls back to the default except for these, where null means "off".
_NULLABLE_KEYS = frozenset({"max_pages", "selenium_wait_seconds"})

_COERCERS: dict[str, Callable[[Any, str], Any]] = {
    "seed_url": lambda value, key: str(value),
    "max_depth": partial(_number, int),
    "backend": _to_backend,
    "concurrency": partial(_number, int),
    "max_pages": partial(_number, int),
    "timeout_seconds": partial(_number, float),
    "user_agent": lambda value, key: str(value),
    "default_headers": _headers,
    "selenium_wait_seconds": partial(_number, float),
    "strip_www": _flag,
    "sort_query_params": _flag,
    "export_folder": lambda value, key: str(value),
    "export_prefix": lambda value, key: str(value),
    "verbose": _flag,
}


@dataclass(slots=True)
class CrawlConfig:
    """Top-level crawler configuration used by orchestrator/fetcher/CLI.

    Depth bounds are not checked here: the seed and depth are validated when a
    session starts, so a bad value surfaces as `InvalidSeedError`.
    """

    seed_url: str
    max_depth: int = DEFAULT_MAX_DEPTH

    backend: FetchBackend = DEFAULT_FETCH_BACKEND
    concurrency: int = DEFAULT_CONCURRENCY
    max_pages: int | None = DEFAULT_MAX_PAGES

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    selenium_wait_seconds: float | None = DEFAULT_SELENIUM_WAIT_SECONDS

    strip_www: bool = DEFAULT_STRIP_WWW
    sort_query_params: bool = DEFAULT_SORT_QUERY_PARAMS

    export_folder: str = DEFAULT_EXPORT_FOLDER
    export_prefix: str = DEFAULT_EXPORT_PREFIX

    verbose: bool = False

    def __post_init__(self) -> None:
        self.seed_url = (self.seed_url or "").strip()
        if not self.seed_url:
            raise InvalidSeedError("CrawlConfig requires a seed URL")

        self.backend = _to_backend(self.backend)

        if self.concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        if self.max_pages is not None and self.max_pages <= 0:
            raise ValueError("max_pages must be > 0 when set")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.selenium_wait_seconds is not None and self.selenium_wait_seconds < 0:
            raise ValueError("selenium_wait_seconds must be >= 0 when set")
        if not self.export_prefix.strip():
            raise ValueError("export_prefix cannot be empty")

    def normalizer_options(self) -> dict[str, Any]:
        """Keyword arguments for `normalize_url` derived from this config."""

        return {
            "strip_www": self.strip_www,
            "sort_query_params": self.sort_query_params,
        }

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent."""

        merged: dict[str, str] = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "seed_url": self.seed_url,
            "max_depth": self.max_depth,
            "backend": self.backend.value,
            "concurrency": self.concurrency,
            "max_pages": self.max_pages,
            "timeout_seconds": self.timeout_seconds,
            "user_agent": self.user_agent,
            "default_headers": self.default_headers,
            "selenium_wait_seconds": self.selenium_wait_seconds,
            "strip_www": self.strip_www,
            "sort_query_params": self.sort_query_params,
            "export_folder": self.export_folder,
            "export_prefix": self.export_prefix,
            "verbose": self.verbose,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary, rejecting unknown keys."""

        data = dict(payload)
        for alias, key in _KEY_ALIASES.items():
            if alias in data:
                data.setdefault(key, data.pop(alias))

        if not data.get("seed_url"):
            raise ValueError("Config missing required key: 'seed_url'")

        unknown = sorted(set(data) - set(_COERCERS))
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")

        values = {
            key: _COERCERS[key](value, key)
            for key, value in data.items()
            if value is not None or key in _NULLABLE_KEYS
        }
        return cls(**values)


def _config_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )
    return suffix


def load_config_payload(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain mapping.

    An empty YAML file reads as an empty mapping.
    """

    config_path = Path(path)
    suffix = _config_suffix(config_path)
    text = config_path.read_text(encoding="utf-8")

    if suffix == ".json":
        payload = json.loads(text)
    else:
        payload = yaml.safe_load(text) or {}

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping at top level")
    return payload


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    return CrawlConfig.from_dict(load_config_payload(path))


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = _config_suffix(out_path)
    payload = config.to_dict()

    if suffix == ".json":
        text = json.dumps(payload, indent=JSON_INDENT) + "\n"
    else:
        text = yaml.safe_dump(payload, sort_keys=False)

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")


__all__ = [
    "CrawlConfig",
    "load_config",
    "load_config_payload",
    "save_config",
]
