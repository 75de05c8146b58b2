"""Node configuration using pydantic-settings.

Configuration hierarchy:
- PostgresConfig: Coordination store connection
- HooksConfig: become-leader / become-standby commands
- ElectionConfig: Polling cadence
- LoggingConfig: Logging behavior
- MetricsConfig: Prometheus exporter
- Settings: Main config aggregating all sub-configs

Sources, highest priority first: environment (prefix LUNNER_, nested
delimiter "__"), then the YAML file.
Example: LUNNER_POSTGRES__CONNECTION=postgresql://lunner@db/lunner
"""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from lunner.core.errors import ConfigError

CONFIG_PATH_ENV = "LUNNER_CONF"
DEFAULT_CONFIG_PATH = "./lunner.yml"

_ASYNC_DRIVER_PREFIX = "postgresql+asyncpg://"
_ACCEPTED_PREFIXES = (_ASYNC_DRIVER_PREFIX, "postgresql://", "postgres://")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class PostgresConfig(BaseModel):
    """Coordination store connection."""

    connection: str = Field(description="PostgreSQL URL (postgresql://user:pw@host/db)")
    table: str = Field(default="lunner", description="Claim table name")
    timeout_seconds: float = Field(
        default=5.0, gt=0, description="Per-cycle database round trip timeout (seconds)"
    )

    @field_validator("connection")
    @classmethod
    def _normalize_connection(cls, value: str) -> str:
        value = value.strip()
        for prefix in _ACCEPTED_PREFIXES:
            if value.startswith(prefix):
                value = _ASYNC_DRIVER_PREFIX + value[len(prefix):]
                break
        else:
            raise ValueError("must be a postgresql:// URL")
        try:
            make_url(value)
        except (ArgumentError, ValueError) as e:
            raise ValueError(f"malformed connection URL: {e}") from e
        return value

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        if not _IDENTIFIER_RE.match(value):
            raise ValueError("must be a plain SQL identifier")
        return value

    @property
    def safe_url(self) -> str:
        """Connection URL with the password masked, for logs."""
        return make_url(self.connection).render_as_string(hide_password=True)


class HookConfig(BaseModel):
    """One external command."""

    cmd: str = Field(min_length=1, description="Executable path or name on PATH")
    args: list[str] = Field(default_factory=list)


class HooksConfig(BaseModel):
    become_leader: HookConfig
    become_standby: HookConfig


class ElectionConfig(BaseModel):
    """Election timing.

    The watcher polls the leadership state at half the election interval.
    """

    poll_interval_seconds: float = Field(default=10.0, gt=0)

    @property
    def watch_interval_seconds(self) -> float:
        return self.poll_interval_seconds / 2


class LoggingConfig(BaseModel):
    """Logging configuration.

    Supports both text and JSON formats for different environments:
    - text: Human-readable for local development
    - json: Structured logging for production (log aggregation)
    """

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: Literal["text", "json"] = Field(default="text")
    service_name: str = Field(default="lunner", description="Service identifier in logs")
    rate_limit_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Minimum seconds between identical non-error messages",
    )
    schema_version: str = Field(
        default="1.0", description="Log schema version emitted in JSON records"
    )


class MetricsConfig(BaseModel):
    """Prometheus exporter configuration."""

    enabled: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=9464, ge=1, le=65535)


class Settings(BaseSettings):
    """Main node configuration.

    Environment variable prefix: LUNNER_
    Nested fields use "__": LUNNER_HOOKS__BECOME_LEADER__CMD=/usr/bin/promote
    """

    model_config = SettingsConfigDict(
        env_prefix="LUNNER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    id: str = Field(min_length=1, description="Fleet-unique node identity")
    leader_timeout_seconds: float = Field(
        gt=0, description="Silence after which a leader's claim may be taken over"
    )
    postgres: PostgresConfig
    hooks: HooksConfig
    election: ElectionConfig = Field(default_factory=ElectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        if settings_cls.model_config.get("yaml_file"):
            sources.append(YamlConfigSettingsSource(settings_cls))
        return tuple(sources)

    @property
    def leader_timeout(self) -> timedelta:
        return timedelta(seconds=self.leader_timeout_seconds)

    def timing_warnings(self) -> list[str]:
        """Return non-fatal warnings about the election timing."""
        poll = self.election.poll_interval_seconds
        if self.leader_timeout_seconds < 2 * poll:
            return [
                f"leader_timeout_seconds ({self.leader_timeout_seconds:g}) should be at "
                f"least 2x election.poll_interval_seconds ({poll:g}) to avoid false takeovers"
            ]
        return []


def resolve_config_path(config_path: str | None = None) -> Path:
    """CLI flag, then LUNNER_CONF, then ./lunner.yml."""
    return Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file, with environment overrides.

    Raises:
        ConfigError: File missing, unreadable, not YAML, or invalid.
    """
    path = Path(config_path) if config_path is not None else resolve_config_path()
    if not path.is_file():
        raise ConfigError(f"Couldn't open config file: {path}")

    class FileSettings(Settings):
        model_config = SettingsConfigDict(yaml_file=path)

    try:
        return FileSettings()
    except yaml.YAMLError as e:
        raise ConfigError(f"Couldn't parse config file {path}: {e}") from e
    except (ValueError, TypeError, OSError) as e:
        # pydantic.ValidationError is a ValueError
        raise ConfigError(f"Invalid config file {path}: {e}") from e
