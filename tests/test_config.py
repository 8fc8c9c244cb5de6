"""Tests for configuration loading and validation."""

import pytest

from src.config import (
    AppConfig,
    AvailabilityConfig,
    CacheConfig,
    PolicyDefaults,
    SuspensionConfig,
    _safe_int,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_negative_buffer(self):
        config = AppConfig(policy=PolicyDefaults(buffer_minutes=-1))
        with pytest.raises(ValueError, match="DEFAULT_BUFFER_MINUTES"):
            _validate_config(config)

    def test_zero_recurrence_horizon(self):
        config = AppConfig(availability=AvailabilityConfig(recurrence_horizon_months=0))
        with pytest.raises(ValueError, match="RECURRENCE_HORIZON_MONTHS"):
            _validate_config(config)

    def test_zero_upcoming_window(self):
        config = AppConfig(availability=AvailabilityConfig(upcoming_window_minutes=0))
        with pytest.raises(ValueError, match="UPCOMING_WINDOW_MINUTES"):
            _validate_config(config)

    def test_zero_no_show_threshold(self):
        config = AppConfig(suspension=SuspensionConfig(no_show_threshold=0))
        with pytest.raises(ValueError, match="NO_SHOW_THRESHOLD"):
            _validate_config(config)

    def test_zero_suspension_length(self):
        config = AppConfig(suspension=SuspensionConfig(suspension_length_months=0))
        with pytest.raises(ValueError, match="SUSPENSION_LENGTH_MONTHS"):
            _validate_config(config)

    def test_negative_grace(self):
        config = AppConfig(suspension=SuspensionConfig(ready_grace_minutes=-5))
        with pytest.raises(ValueError, match="READY_GRACE_MINUTES"):
            _validate_config(config)

    def test_negative_cache_ttl(self):
        config = AppConfig(cache=CacheConfig(policy_ttl_seconds=-1))
        with pytest.raises(ValueError, match="POLICY_CACHE_TTL_SECONDS"):
            _validate_config(config)

    def test_zero_cache_ttl_allowed(self):
        config = AppConfig(cache=CacheConfig(policy_ttl_seconds=0, existence_ttl_seconds=0))
        _validate_config(config)


class TestSafeInt:
    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_BOOKING_INT", "42")
        assert _safe_int("TEST_BOOKING_INT", "1") == 42

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("TEST_BOOKING_INT", raising=False)
        assert _safe_int("TEST_BOOKING_INT", "7") == 7

    def test_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_BOOKING_INT", "ten")
        with pytest.raises(ValueError, match="TEST_BOOKING_INT"):
            _safe_int("TEST_BOOKING_INT", "1")


class TestConfigFrozen:
    def test_cannot_mutate(self):
        config = AppConfig()
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"
