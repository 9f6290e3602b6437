"""
Config system - layered typed configuration with validation.

Merge precedence (later overrides earlier):
    defaults < YAML/JSON config files < .env file < process environment < overrides

Environment keys follow the APP_* / DB_* convention:

    APP_NAME=My App
    APP_DEBUG=true
    APP_AUTO_ROUTING=(false)
    DB_DRIVER=mysql
    DB_HOST=127.0.0.1
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import dotenv_values

from .faults import ConfigInvalidFault

__all__ = ["AppConfig", "DatabaseConfig", "ConfigLoader", "ENV_KEYS"]


# Environment variable -> dotted config path
ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "APP_NAME": ("name",),
    "APP_ENV": ("env",),
    "APP_URL": ("url",),
    "APP_TIMEZONE": ("timezone",),
    "APP_DEBUG": ("debug",),
    "APP_AUTO_ROUTING": ("auto_routing",),
    "APP_KEY": ("secret_key",),
    "APP_TEMPLATES": ("templates_dir",),
    "APP_LAYOUT": ("layout",),
    "APP_LOG_LEVEL": ("log_level",),
    "SESSION_COOKIE": ("session_cookie",),
    "SESSION_LIFETIME": ("session_ttl",),
    "DB_DRIVER": ("database", "driver"),
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_DATABASE": ("database", "database"),
    "DB_USERNAME": ("database", "username"),
    "DB_PASSWORD": ("database", "password"),
    "DB_CHARSET": ("database", "charset"),
    "DB_PATH": ("database", "path"),
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DatabaseConfig:
    """Connection settings; ``url`` renders the engine URL."""

    driver: str = "sqlite"
    host: str = "localhost"
    port: Optional[int] = None
    database: str = ""
    username: str = ""
    password: str = ""
    charset: str = "utf8mb4"
    path: str = "database.sqlite3"

    @property
    def url(self) -> str:
        if self.driver == "sqlite":
            return f"sqlite:///{self.path}"
        creds = ""
        if self.username:
            creds = quote(self.username, safe="")
            if self.password:
                creds += ":" + quote(self.password, safe="")
            creds += "@"
        port = f":{self.port}" if self.port else ""
        return f"mysql://{creds}{self.host}{port}/{self.database}?charset={self.charset}"


@dataclass
class AppConfig:
    name: str = "Strix"
    env: str = "local"
    url: str = "http://localhost"
    timezone: str = "UTC"
    debug: bool = False
    auto_routing: bool = True
    secret_key: str = ""
    templates_dir: str = "templates"
    layout: Optional[str] = "layout"
    session_cookie: str = "strix_session"
    session_ttl: int = 7200
    log_level: str = "INFO"
    max_body_size: int = 10 * 1024 * 1024
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def is_production(self) -> bool:
        return self.env in ("production", "prod")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "database"}
        data["database"] = {f.name: getattr(self.database, f.name) for f in fields(self.database)}
        data["database"]["password"] = "***" if self.database.password else ""
        data["secret_key"] = "***" if self.secret_key else ""
        return data


def parse_env_value(value: str) -> Any:
    """Coerce ``true``/``(true)``/``false``/``(false)``/``null``/``(null)``."""
    lowered = value.strip().lower()
    if lowered in ("true", "(true)"):
        return True
    if lowered in ("false", "(false)"):
        return False
    if lowered in ("null", "(null)"):
        return None
    return value


def _coerce(key: str, value: Any, annotation: str) -> Any:
    """Convert a raw value to the field's declared type."""
    if value is None:
        if annotation.startswith("Optional"):
            return None
        raise ConfigInvalidFault(key=key, reason="value must not be null")

    if "bool" in annotation:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            parsed = parse_env_value(value)
            if isinstance(parsed, bool):
                return parsed
            if value.strip() in ("1", "0"):
                return value.strip() == "1"
        if isinstance(value, int):
            return bool(value)
        raise ConfigInvalidFault(key=key, reason=f"expected a boolean, got {value!r}")

    if "int" in annotation:
        if isinstance(value, bool):
            raise ConfigInvalidFault(key=key, reason=f"expected an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigInvalidFault(key=key, reason=f"expected an integer, got {value!r}")

    return str(value)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage:
        loader = ConfigLoader.load(paths=["config/app.yaml"], env_file=".env")
        config = loader.to_app_config()
        loader.get("database.host")
    """

    def __init__(self):
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_file: Optional[str] = ".env",
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Args:
            paths: YAML or JSON config files, applied in order
            env_file: Path to a .env file (skipped if missing)
            overrides: Highest-precedence values, nested like the file format
            environ: Environment mapping (defaults to os.environ)
        """
        loader = cls()

        for path in paths or []:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_file(self, path: Path):
        if not path.exists():
            return
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            elif path.suffix in (".yaml", ".yml"):
                import yaml
                data = yaml.safe_load(f)
            else:
                raise ConfigInvalidFault(key=str(path), reason="unsupported config file type")
        if data:
            if not isinstance(data, dict):
                raise ConfigInvalidFault(key=str(path), reason="top level must be a mapping")
            self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load APP_*/DB_* keys from a .env file without touching os.environ."""
        if not Path(path).exists():
            return
        self._load_env({k: v for k, v in dotenv_values(path).items() if v is not None})

    def _load_env(self, environ: Mapping[str, str]):
        for key, dotted in ENV_KEYS.items():
            if key in environ:
                self._set_nested(dotted, parse_env_value(environ[key]))

    def _set_nested(self, dotted: Tuple[str, ...], value: Any):
        current = self.config_data
        for part in dotted[:-1]:
            current = current.setdefault(part, {})
        current[dotted[-1]] = value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current: Any = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_app_config(self) -> AppConfig:
        """
        Build a validated ``AppConfig``.

        Raises:
            ConfigInvalidFault: unknown keys, wrong types or bad values
        """
        data = dict(self.config_data)
        db_data = data.pop("database", {}) or {}
        if not isinstance(db_data, dict):
            raise ConfigInvalidFault(key="database", reason="must be a mapping")

        app_kwargs = self._typed_kwargs(AppConfig, data, prefix="")
        db_kwargs = self._typed_kwargs(DatabaseConfig, db_data, prefix="database.")
        config = AppConfig(**app_kwargs, database=DatabaseConfig(**db_kwargs))
        self._validate(config)
        return config

    @staticmethod
    def _typed_kwargs(config_class: type, data: dict, prefix: str) -> Dict[str, Any]:
        known = {f.name: f for f in fields(config_class) if f.name != "database"}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                raise ConfigInvalidFault(key=prefix + key, reason="unknown configuration key")
            kwargs[key] = _coerce(prefix + key, value, str(known[key].type))
        return kwargs

    @staticmethod
    def _validate(config: AppConfig):
        if config.database.driver not in ("sqlite", "mysql"):
            raise ConfigInvalidFault(
                key="database.driver",
                reason=f"unsupported driver {config.database.driver!r} (sqlite or mysql)",
            )
        if config.database.driver == "mysql" and not config.database.database:
            raise ConfigInvalidFault(key="database.database", reason="required for mysql")
        if config.log_level.upper() not in _LOG_LEVELS:
            raise ConfigInvalidFault(key="log_level", reason=f"unknown level {config.log_level!r}")
        config.log_level = config.log_level.upper()
        if config.session_ttl <= 0:
            raise ConfigInvalidFault(key="session_ttl", reason="must be positive")
        try:
            ZoneInfo(config.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigInvalidFault(key="timezone", reason=f"unknown timezone {config.timezone!r}")

    def to_dict(self) -> dict:
        return self.config_data
