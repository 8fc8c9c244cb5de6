"""
Centralized configuration with environment variable overrides.

All engine thresholds, horizons and cache lifetimes are configurable
here. Nothing is hardcoded in availability, pricing or lifecycle logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.logging_context import install_request_id_filter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class PolicyDefaults:
    """Fallbacks applied when a creator's policy leaves a value unset."""

    timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    buffer_minutes: int = _safe_int("DEFAULT_BUFFER_MINUTES", "10")


@dataclass(frozen=True)
class AvailabilityConfig:
    """Availability listing and recurrence expansion settings."""

    recurrence_horizon_months: int = _safe_int("RECURRENCE_HORIZON_MONTHS", "3")
    upcoming_window_minutes: int = _safe_int("UPCOMING_WINDOW_MINUTES", "60")


@dataclass(frozen=True)
class SuspensionConfig:
    """No-show penalties and suspension lengths."""

    no_show_threshold: int = _safe_int("NO_SHOW_THRESHOLD", "3")
    suspension_length_months: int = _safe_int("SUSPENSION_LENGTH_MONTHS", "1")
    ready_grace_minutes: int = _safe_int("READY_GRACE_MINUTES", "5")


@dataclass(frozen=True)
class CacheConfig:
    """Lifetimes of the read-through caches."""

    policy_ttl_seconds: int = _safe_int("POLICY_CACHE_TTL_SECONDS", "300")
    existence_ttl_seconds: int = _safe_int("EXISTENCE_CACHE_TTL_SECONDS", "300")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    policy: PolicyDefaults = field(default_factory=PolicyDefaults)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    suspension: SuspensionConfig = field(default_factory=SuspensionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "creator-booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.policy.buffer_minutes < 0:
        raise ValueError(
            f"DEFAULT_BUFFER_MINUTES must be >= 0, got {config.policy.buffer_minutes}"
        )
    if config.availability.recurrence_horizon_months < 1:
        raise ValueError(
            "RECURRENCE_HORIZON_MONTHS must be >= 1, "
            f"got {config.availability.recurrence_horizon_months}"
        )
    if config.availability.upcoming_window_minutes < 1:
        raise ValueError(
            "UPCOMING_WINDOW_MINUTES must be >= 1, "
            f"got {config.availability.upcoming_window_minutes}"
        )
    if config.suspension.no_show_threshold < 1:
        raise ValueError(
            f"NO_SHOW_THRESHOLD must be >= 1, got {config.suspension.no_show_threshold}"
        )
    if config.suspension.suspension_length_months < 1:
        raise ValueError(
            "SUSPENSION_LENGTH_MONTHS must be >= 1, "
            f"got {config.suspension.suspension_length_months}"
        )
    if config.suspension.ready_grace_minutes < 0:
        raise ValueError(
            "READY_GRACE_MINUTES must be >= 0, "
            f"got {config.suspension.ready_grace_minutes}"
        )

    for ttl_name, ttl_value in [
        ("POLICY_CACHE_TTL_SECONDS", config.cache.policy_ttl_seconds),
        ("EXISTENCE_CACHE_TTL_SECONDS", config.cache.existence_ttl_seconds),
    ]:
        if ttl_value < 0:
            raise ValueError(f"{ttl_name} must be >= 0, got {ttl_value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_request_id_filter()
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
