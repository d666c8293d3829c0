"""
Centralized configuration with environment variable overrides.

Storage backend, lock sizing, bulk-creation limits and reconciliation
timing are all configurable here. Nothing is hardcoded in service logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_core.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag such as ``true``/``0``/``off`` from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class StoreConfig:
    """Which persistence adapter backs the repositories."""

    backend: str = os.getenv("STORE_BACKEND", "memory")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./booking_core.db")
    echo_sql: bool = _safe_bool("SQL_ECHO", "false")


@dataclass(frozen=True)
class ConcurrencyConfig:
    """Lock striping and slot-creation serialization."""

    lock_shards: int = _safe_int("LOCK_SHARDS", "64")
    serialize_slot_creation: bool = _safe_bool("SERIALIZE_SLOT_CREATION", "true")


@dataclass(frozen=True)
class AvailabilityConfig:
    """Limits for bulk and recurring slot creation."""

    max_bulk_dates: int = _safe_int("MAX_BULK_DATES", "366")
    max_recurrence_weeks: int = _safe_int("MAX_RECURRENCE_WEEKS", "52")


@dataclass(frozen=True)
class ReconcileConfig:
    """Slot/booking reconciliation settings."""

    grace_seconds: float = _safe_float("RECONCILE_GRACE_SECONDS", "300")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    store: StoreConfig = field(default_factory=StoreConfig)
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-core")


SUPPORTED_BACKENDS = ("memory", "sql")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.store.backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"STORE_BACKEND must be one of {SUPPORTED_BACKENDS}, got {config.store.backend!r}"
        )
    if config.store.backend == "sql" and not config.store.database_url:
        raise ValueError("DATABASE_URL is required when STORE_BACKEND is 'sql'")
    if config.concurrency.lock_shards < 1:
        raise ValueError(
            f"LOCK_SHARDS must be >= 1, got {config.concurrency.lock_shards}"
        )
    if config.availability.max_bulk_dates < 1:
        raise ValueError(
            f"MAX_BULK_DATES must be >= 1, got {config.availability.max_bulk_dates}"
        )
    if config.availability.max_recurrence_weeks < 1:
        raise ValueError(
            "MAX_RECURRENCE_WEEKS must be >= 1, "
            f"got {config.availability.max_recurrence_weeks}"
        )
    if config.reconcile.grace_seconds < 0:
        raise ValueError(
            f"RECONCILE_GRACE_SECONDS must be >= 0, got {config.reconcile.grace_seconds}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s' (store=%s)", config.service_name, config.store.backend)
    return config


# Singleton instance
settings = load_config()
