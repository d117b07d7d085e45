"""
Configuration management for the hostlog receiver.

Uses Pydantic Settings for environment variable validation and type safety.
Values can also be supplied from a YAML file (see ``load_config_file``);
explicit keyword arguments always win over the environment.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Option names used by agent-side tooling and older config files
OPTION_ALIASES: Dict[str, str] = {
    "Port": "port",
    "LogPath": "log_path",
    "MaxLogSize": "max_log_size",
    "MaxArchiveFiles": "max_archive_files",
    "LogErrors": "log_errors",
    "LogDebug": "log_debug",
}


class ReceiverConfig(BaseSettings):
    """Receiver configuration."""

    port: int = Field(
        default=2000,
        ge=1,
        le=65535,
        description="UDP port to listen on"
    )
    bind_address: str = Field(
        default="0.0.0.0",
        description="Local address to bind the UDP socket to"
    )
    log_path: Path = Field(
        default=Path("logs"),
        description="Root directory for per-host log directories"
    )
    max_log_size: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Size in bytes above which an active log file is rotated"
    )
    max_archive_files: int = Field(
        default=0,
        ge=0,
        description="Number of archive files kept per log (0 = unlimited)"
    )
    log_errors: bool = Field(
        default=False,
        description="Record errors under LogPath/ScriptLogs/Errors"
    )
    log_debug: bool = Field(
        default=False,
        description="Record verbose debug traces under LogPath/ScriptLogs/Debug"
    )
    log_level: str = Field(
        default="INFO",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    buffer_size: int = Field(
        default=65535,
        ge=512,
        le=65535,
        description="Maximum datagram size read per receive"
    )

    model_config = SettingsConfigDict(
        env_prefix="HOSTLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v

    @property
    def diagnostics_path(self) -> Path:
        """Root of the diagnostics tree."""
        return self.log_path / "ScriptLogs"


def normalize_options(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate original option names (``MaxLogSize``) to field names.

    Keys that are already field names pass through unchanged.
    """
    return {OPTION_ALIASES.get(key, key): value for key, value in values.items()}


def load_config_file(path: Union[str, Path], **overrides: Any) -> ReceiverConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML file
        **overrides: Values that take precedence over the file (e.g. CLI flags)

    Returns:
        ReceiverConfig built from file values, overrides, environment and defaults

    Example YAML format:
        Port: 2000
        LogPath: /var/log/hostlog
        MaxLogSize: 1048576
        MaxArchiveFiles: 5
        LogErrors: true
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    values = normalize_options(data)
    values.update(overrides)
    return ReceiverConfig(**values)

