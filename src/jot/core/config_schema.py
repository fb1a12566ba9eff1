"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``JotConfig``
instance.  Dict-based access keeps working unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def _expand(v: Any) -> Any:
    if isinstance(v, str):
        return Path(v).expanduser()
    if isinstance(v, Path):
        return v.expanduser()
    return v


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        return _expand(v)


class NotesConfig(BaseModel):
    """Filesystem note store settings."""

    directory: Path = Path("~/.jot/notes").expanduser()
    watch: bool = True
    author: str = ""

    @field_validator("directory", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        return _expand(v)


class RemoteBackendConfig(BaseModel):
    """Settings for one remote-cache backend, with extra fields allowed."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = True
    refresh_interval: float = 600

    @field_validator("refresh_interval")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("refresh_interval must be positive")
        return v


class BackendsConfig(BaseModel):
    """Known remote backends."""

    model_config = ConfigDict(extra="allow")

    calendar: RemoteBackendConfig = RemoteBackendConfig()
    keep: RemoteBackendConfig = RemoteBackendConfig()
    notion: RemoteBackendConfig = RemoteBackendConfig(refresh_interval=7200)


class LoggingConfig(BaseModel):
    """Log sink settings passed to ``setup_logging``."""

    level: str = "WARNING"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


class JotConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.jot"))
    notes: NotesConfig = NotesConfig()
    backends: BackendsConfig = BackendsConfig()
    logging: LoggingConfig = LoggingConfig()
