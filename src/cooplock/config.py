"""Configuration management for cooplock."""

import tomllib
from datetime import timedelta
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import (
    BACK_OFF_MULTIPLIER,
    BACK_OFF_RANDOMIZATION_FACTOR,
    DEFAULT_LOCK_EXPIRATION_TIMEOUT_MS,
    DEFAULT_MAX_CONCURRENT_OPERATIONS,
    DEFAULT_STORE_ROOT,
    MAX_BACK_OFF_INTERVAL_MS,
    MIN_BACK_OFF_INTERVAL_MS,
    RETRY_LOCK_INTERVAL_MS,
)


class BackoffConfig(BaseModel):
    """Exponential backoff used after lost write races and store errors."""

    initial_interval_ms: int = Field(default=MIN_BACK_OFF_INTERVAL_MS, ge=0)
    multiplier: float = Field(default=BACK_OFF_MULTIPLIER, ge=1.0)
    max_interval_ms: int = Field(default=MAX_BACK_OFF_INTERVAL_MS, ge=0)
    randomization_factor: float = Field(default=BACK_OFF_RANDOMIZATION_FACTOR, ge=0.0, lt=1.0)


class LockingConfig(BaseModel):
    """Cooperative locking options."""

    lock_expiration_timeout_ms: int = Field(
        default=DEFAULT_LOCK_EXPIRATION_TIMEOUT_MS,
        gt=0,
        description="Lifetime of a lock before it is considered abandoned",
    )
    max_concurrent_operations: int = Field(
        default=DEFAULT_MAX_CONCURRENT_OPERATIONS,
        gt=0,
        description="Maximum number of lock records persisted at once",
    )
    retry_interval_ms: int = Field(
        default=RETRY_LOCK_INTERVAL_MS,
        ge=0,
        description="Fixed wait before retrying a conflicting or over-capacity update",
    )
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)

    @property
    def lock_expiration_timeout(self) -> timedelta:
        return timedelta(milliseconds=self.lock_expiration_timeout_ms)


class StoreConfig(BaseModel):
    """Configuration for the directory-backed object store used by the CLI."""

    root: Path = Path(DEFAULT_STORE_ROOT)


class CoopLockConfig(BaseModel):
    """Root configuration for cooplock."""

    locking: LockingConfig = Field(default_factory=LockingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def load_config(config_path: Path) -> CoopLockConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to cooplock.toml

    Returns:
        Loaded configuration, or defaults if the file doesn't exist
    """
    if not config_path.exists():
        return CoopLockConfig()
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return CoopLockConfig.model_validate(data)


def write_config_template(config_path: Path) -> Path:
    """Write default config template.

    Args:
        config_path: Destination of the TOML file

    Returns:
        Path to the written config file
    """
    template = {
        "locking": {
            "lock_expiration_timeout_ms": DEFAULT_LOCK_EXPIRATION_TIMEOUT_MS,
            "max_concurrent_operations": DEFAULT_MAX_CONCURRENT_OPERATIONS,
            "retry_interval_ms": RETRY_LOCK_INTERVAL_MS,
            "backoff": {
                "initial_interval_ms": MIN_BACK_OFF_INTERVAL_MS,
                "multiplier": BACK_OFF_MULTIPLIER,
                "max_interval_ms": MAX_BACK_OFF_INTERVAL_MS,
                "randomization_factor": BACK_OFF_RANDOMIZATION_FACTOR,
            },
        },
        "store": {"root": DEFAULT_STORE_ROOT},
    }
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
