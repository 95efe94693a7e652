from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping


class ConfigError(Exception):
    """Raised when the user configuration is invalid."""


@dataclass(slots=True)
class RawgConfig:
    api_key: str = ""
    base_url: str = "https://api.rawg.io/api"
    timeout_seconds: float = 10.0

    def resolved_key(self) -> str:
        key = self.api_key.strip()
        if key:
            return key
        return os.environ.get("RAWG_API_KEY", "").strip()


@dataclass(slots=True)
class WikipediaConfig:
    api_url: str = "https://en.wikipedia.org/w/api.php"
    thumb_size: int = 480
    timeout_seconds: float = 10.0


@dataclass(slots=True)
class HTTPConfig:
    user_agent: str = "gameshelf/0.1 (+https://localhost)"
    max_attempts: int = 1
    backoff_min_seconds: float = 1.0
    backoff_max_seconds: float = 8.0


@dataclass(slots=True)
class ResolverConfig:
    default_limit: int = 6
    debounce_ms: int = 300


@dataclass(slots=True)
class PathsConfig:
    db_path: str = "gameshelf.db"
    export_dir: str = "."


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass(slots=True)
class Config:
    rawg: RawgConfig = field(default_factory=RawgConfig)
    wikipedia: WikipediaConfig = field(default_factory=WikipediaConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    raw_path: Path | None = None

    def db_path(self) -> Path:
        return self.resolve_path(self.paths.db_path)

    def export_path(self) -> Path:
        return self.resolve_path(self.paths.export_dir)

    def resolve_path(self, value: str) -> Path:
        base = self.raw_path.parent if self.raw_path else Path.cwd()
        return (base / value).expanduser().resolve()


def default_config_path() -> Path:
    return Path("config.toml")


def load_config(path: Path | None = None) -> Config:
    config_path = path or default_config_path()
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    data = _read_toml(config_path)
    cfg = _build_config(data, config_path)
    _validate_config(cfg)
    return cfg


def _read_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _build_config(data: Mapping[str, Any], path: Path) -> Config:
    for section in ("rawg", "wikipedia", "http", "resolver", "paths", "logging"):
        value = data.get(section)
        if value is not None and not isinstance(value, Mapping):
            raise ConfigError(f"[{section}] must be a table.")

    return Config(
        rawg=_load_section(RawgConfig, data.get("rawg", {})),
        wikipedia=_load_section(WikipediaConfig, data.get("wikipedia", {})),
        http=_load_section(HTTPConfig, data.get("http", {})),
        resolver=_load_section(ResolverConfig, data.get("resolver", {})),
        paths=_load_section(PathsConfig, data.get("paths", {})),
        logging=_load_section(LoggingConfig, data.get("logging", {})),
        raw_path=path.resolve(),
    )


def _load_section(cls: type[Any], values: Mapping[str, Any] | None) -> Any:
    if not values:
        return cls()  # type: ignore[call-arg]
    init_args: dict[str, Any] = {}
    for field_name in cls.__dataclass_fields__:  # type: ignore[attr-defined]
        if field_name in values:
            init_args[field_name] = values[field_name]
    return cls(**init_args)  # type: ignore[arg-type]


def _validate_config(cfg: Config) -> None:
    if not isinstance(cfg.rawg.api_key, str):
        raise ConfigError("rawg.api_key must be a string.")
    if cfg.rawg.timeout_seconds <= 0 or cfg.wikipedia.timeout_seconds <= 0:
        raise ConfigError("timeout_seconds must be positive.")
    if cfg.wikipedia.thumb_size < 1:
        raise ConfigError("wikipedia.thumb_size must be at least 1.")
    if cfg.http.max_attempts < 1:
        raise ConfigError("http.max_attempts must be at least 1.")
    if not 0 <= cfg.http.backoff_min_seconds <= cfg.http.backoff_max_seconds:
        raise ConfigError("0 <= http.backoff_min_seconds <= http.backoff_max_seconds must hold.")
    if cfg.resolver.default_limit < 1:
        raise ConfigError("resolver.default_limit must be at least 1.")
    if cfg.resolver.debounce_ms < 0:
        raise ConfigError("resolver.debounce_ms must not be negative.")


def ensure_directories(cfg: Config) -> None:
    for path in (cfg.db_path().parent, cfg.export_path()):
        path.mkdir(parents=True, exist_ok=True)


def config_from_mapping(data: Mapping[str, Any]) -> Config:
    cfg_path = default_config_path()
    cfg = _build_config(data, cfg_path)
    _validate_config(cfg)
    return cfg


def apply_overrides(cfg: Config, overrides: Iterable[tuple[str, Any]]) -> Config:
    for key, value in overrides:
        top, _, sub = key.partition(".")
        if not sub:
            raise ConfigError(f"Invalid override key: {key}")
        section = getattr(cfg, top, None)
        if section is None:
            raise ConfigError(f"Unknown config section: {top}")
        if not hasattr(section, sub):
            raise ConfigError(f"Unknown config key: {key}")
        setattr(section, sub, value)
    _validate_config(cfg)
    return cfg
