"""
Service settings.

`config.json` holds the listen port. It is created with the default port the
first time the service starts without one. Everything else comes from the
environment:

- LOG_SERVICE_CONFIG      path to config.json (default: ./config.json)
- LOG_SERVICE_DB          SQLite file (default: ./log.db)
- LOG_SERVICE_HOST        bind address (default: localhost)
- LOG_SERVICE_QUERY_MODE  "structured" or "raw" (default: structured)
- LOG_LEVEL               logging level name (default: INFO)
"""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 80
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(RuntimeError):
    pass


class QueryMode(str, Enum):
    STRUCTURED = "structured"
    RAW = "raw"


class FileConfig(BaseModel):
    """
    Contents of config.json. Unknown keys are ignored.
    """

    port: int = Field(DEFAULT_PORT, ge=1, le=65535)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = DEFAULT_PORT
    host: str = "localhost"
    database_path: str = "log.db"
    query_mode: QueryMode = QueryMode.STRUCTURED
    log_level: str = "INFO"


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def config_path() -> Path:
    return Path(_env_str("LOG_SERVICE_CONFIG", "config.json"))


def load_file_config(path: str | Path) -> FileConfig:
    """
    Read config.json, creating it with the default port when it does not exist.
    A file without a port gets the default port written back.
    """
    path = Path(path)
    if not path.exists():
        config = FileConfig()
        path.write_text(json.dumps(config.model_dump(), indent=2), encoding="utf-8")
        logger.warning("config_created path=%s port=%s", path, config.port)
        return config

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")

    try:
        config = FileConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    if "port" not in raw:
        raw["port"] = config.port
        path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
        logger.warning("config_port_defaulted path=%s port=%s", path, config.port)
    return config


def log_level_from_env() -> str:
    level = _env_str("LOG_LEVEL", "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"


def query_mode_from_env() -> QueryMode:
    raw = _env_str("LOG_SERVICE_QUERY_MODE", QueryMode.STRUCTURED.value).lower()
    try:
        return QueryMode(raw)
    except ValueError as exc:
        valid = [mode.value for mode in QueryMode]
        raise ConfigError(f"LOG_SERVICE_QUERY_MODE must be one of: {valid}") from exc


def load_settings(path: str | Path | None = None) -> Settings:
    file_config = load_file_config(path if path is not None else config_path())
    return Settings(
        port=file_config.port,
        host=_env_str("LOG_SERVICE_HOST", "localhost"),
        database_path=_env_str("LOG_SERVICE_DB", "log.db"),
        query_mode=query_mode_from_env(),
        log_level=log_level_from_env(),
    )
