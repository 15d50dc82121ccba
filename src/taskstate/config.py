"""Configuration management for taskstate."""

import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import (
    CONFIG_FILE,
    LOCK_RETRY_INTERVAL,
    LOCK_STALE_SECONDS,
    LOCK_TIMEOUT,
    MAX_BACKUPS,
    RESOLVER_TTL,
    ROTATION_BACKUPS,
    ROTATION_THRESHOLD,
    TAIL_BLOCK_SIZE,
    TAIL_WHOLE_FILE_LIMIT,
)


class LockConfig(BaseModel):
    """Configuration for lock acquisition."""

    timeout_seconds: float = Field(default=LOCK_TIMEOUT, ge=0)
    stale_seconds: float = Field(default=LOCK_STALE_SECONDS, gt=0)
    retry_interval_seconds: float = Field(default=LOCK_RETRY_INTERVAL, gt=0)


class LogConfig(BaseModel):
    """Configuration for activity log rotation."""

    rotation_threshold: int = Field(default=ROTATION_THRESHOLD, ge=1)
    rotation_backups: int = Field(default=ROTATION_BACKUPS, ge=1)


class BackupConfig(BaseModel):
    """Configuration for general file backups."""

    max_backups: int = Field(default=MAX_BACKUPS, ge=1)


class ResolverConfig(BaseModel):
    """Configuration for active record resolution."""

    ttl_seconds: float = Field(default=RESOLVER_TTL, ge=0)


class TailConfig(BaseModel):
    """Configuration for tail reads."""

    whole_file_limit: int = Field(default=TAIL_WHOLE_FILE_LIMIT, ge=0)
    block_size: int = Field(default=TAIL_BLOCK_SIZE, ge=1)


class StoreConfig(BaseModel):
    """Root configuration for a task store."""

    locks: LockConfig = Field(default_factory=LockConfig)
    logs: LogConfig = Field(default_factory=LogConfig)
    backups: BackupConfig = Field(default_factory=BackupConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    tail: TailConfig = Field(default_factory=TailConfig)


def load_config(root: Path) -> StoreConfig:
    """Load config from <root>/config.toml.

    Args:
        root: Records root directory

    Returns:
        Loaded configuration, or defaults if config.toml doesn't exist
    """
    config_path = root / CONFIG_FILE
    if not config_path.exists():
        return StoreConfig()
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return StoreConfig.model_validate(data)


def write_config_template(root: Path) -> Path:
    """Write default config.toml template.

    Args:
        root: Records root directory

    Returns:
        Path to the written config file
    """
    config_path = root / CONFIG_FILE
    with open(config_path, "wb") as f:
        tomli_w.dump(StoreConfig().model_dump(), f)
    return config_path
