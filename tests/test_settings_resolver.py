"""Tests for policy loading, coercion, caching and conditional writes."""

import pytest

from src.config import settings
from src.engine.settings_resolver import SettingsResolver, get_zone, sanitize_settings
from src.errors import (
    BookingSettingNotFoundError,
    MissingBookingSettingsError,
    SettingsConflictError,
    StorageError,
    TimezoneError,
)
from src.schemas.policy_schema import BookingPolicy, coerce_bool, coerce_int
from src.tools.storage import BOOKING_SETTINGS
from tests.conftest import CREATOR_ID, make_settings_document


class TestCoercion:
    def test_int_coercion(self):
        assert coerce_int("30") == 30
        assert coerce_int(" 45 ") == 45
        assert coerce_int("12.7") == 12
        assert coerce_int("abc") == 0
        assert coerce_int(None) == 0

    def test_bool_coercion(self):
        assert coerce_bool(True)
        assert coerce_bool("true")
        assert coerce_bool(1)
        assert coerce_bool("1")
        assert not coerce_bool("yes")
        assert not coerce_bool("TRUE")
        assert not coerce_bool(0)
        assert not coerce_bool(None)

    def test_policy_document_coerced(self):
        policy = BookingPolicy.model_validate(make_settings_document(
            min_booking_time="30",
            advance_booking="1",
            negotiation_phase="yes",
            timezone="  <b>Europe/Paris</b>\n",
            suspensions="junk",
            default_working_hours="not-a-window",
        ))
        assert policy.min_booking_minutes == 30
        assert policy.advance_booking_enabled
        assert not policy.negotiation_phase_enabled
        assert policy.timezone == "Europe/Paris"
        assert policy.suspensions == []
        assert policy.default_working_hours is None
        assert not policy.has_hours()


class TestSanitizeSettings:
    def test_unknown_keys_dropped(self):
        assert sanitize_settings({"booking_buffer": 5, "favourite_colour": "blue"}) == {
            "booking_buffer": 5
        }

    def test_field_names_mapped_to_stored_keys(self):
        assert sanitize_settings({"min_booking_minutes": 45}) == {"min_booking_time": 45}


class TestGetZone:
    def test_known_zone(self):
        assert get_zone("Europe/Paris") is not None

    def test_empty_name_uses_default(self):
        assert get_zone("") is not None

    def test_unknown_zone(self):
        with pytest.raises(TimezoneError, match=CREATOR_ID):
            get_zone("Mars/Olympus", CREATOR_ID)


class TestGetPolicy:
    @pytest.mark.asyncio
    async def test_loads_policy(self, resolver):
        policy = await resolver.get_policy(CREATOR_ID)
        assert policy.creator_id == CREATOR_ID
        assert policy.default_rate_per_minute == 2

    @pytest.mark.asyncio
    async def test_empty_creator_id(self, resolver):
        with pytest.raises(MissingBookingSettingsError):
            await resolver.get_policy("")

    @pytest.mark.asyncio
    async def test_unknown_creator(self, resolver):
        with pytest.raises(BookingSettingNotFoundError, match="99"):
            await resolver.get_policy("99")

    @pytest.mark.asyncio
    async def test_cached_until_written_through_resolver(self, resolver, store):
        await resolver.get_policy(CREATOR_ID)
        store.seed(BOOKING_SETTINGS, CREATOR_ID, make_settings_document(booking_buffer=99))
        assert (await resolver.get_policy(CREATOR_ID)).booking_buffer_minutes == 10

        await resolver.update_policy(CREATOR_ID, {"min_booking_time": 20})
        policy = await resolver.get_policy(CREATOR_ID)
        assert policy.booking_buffer_minutes == 99
        assert policy.min_booking_minutes == 20

    @pytest.mark.asyncio
    async def test_returned_policy_is_a_copy(self, resolver):
        policy = await resolver.get_policy(CREATOR_ID)
        policy.no_show_count = 50
        assert (await resolver.get_policy(CREATOR_ID)).no_show_count == 0

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, store):
        store.available = False
        with pytest.raises(StorageError):
            await SettingsResolver(store).get_policy(CREATOR_ID)


class TestUpdatePolicy:
    @pytest.mark.asyncio
    async def test_merges_over_stored_document(self, resolver, store):
        await resolver.update_policy(CREATOR_ID, {"max_booking_minutes": 90, "unknown": 1})
        document = store.snapshot(BOOKING_SETTINGS, CREATOR_ID)
        assert document["max_booking_time"] == 90
        assert document["min_booking_time"] == 15
        assert "unknown" not in document

    @pytest.mark.asyncio
    async def test_matching_expected_value_writes(self, resolver, store):
        await resolver.update_policy(CREATOR_ID, {"booking_buffer": 15}, expected={"booking_buffer": 10})
        assert store.snapshot(BOOKING_SETTINGS, CREATOR_ID)["booking_buffer"] == 15

    @pytest.mark.asyncio
    async def test_stale_expected_value_conflicts(self, resolver, store):
        with pytest.raises(SettingsConflictError) as exc_info:
            await resolver.update_policy(
                CREATOR_ID, {"booking_buffer": 15}, expected={"booking_buffer": 5}
            )
        assert exc_info.value.to_dict() == {
            "error": "settings_conflict",
            "message": exc_info.value.message,
            "conflictField": "booking_buffer",
        }
        assert store.snapshot(BOOKING_SETTINGS, CREATOR_ID)["booking_buffer"] == 10


class TestFeatureChecks:
    @pytest.mark.asyncio
    async def test_enabled_flags(self, resolver):
        assert await resolver.has_enabled_booking(CREATOR_ID)
        assert not await resolver.has_enabled_negotiation(CREATOR_ID)

    @pytest.mark.asyncio
    async def test_bounds(self, resolver):
        assert await resolver.get_min_booking_minutes(CREATOR_ID) == 15
        assert await resolver.get_max_booking_minutes(CREATOR_ID) == 240
        assert await resolver.get_buffer_minutes(CREATOR_ID) == 10

    @pytest.mark.asyncio
    async def test_unset_buffer_falls_back_to_default(self, resolver, store):
        document = make_settings_document()
        del document["booking_buffer"]
        store.seed(BOOKING_SETTINGS, CREATOR_ID, document)
        assert await resolver.get_buffer_minutes(CREATOR_ID) == settings.policy.buffer_minutes

    @pytest.mark.asyncio
    async def test_creator_without_settings(self, resolver):
        assert not await resolver.has_enabled_booking("99")
        assert await resolver.get_buffer_minutes("99") is None
        assert await resolver.get_min_booking_minutes("99") is None
