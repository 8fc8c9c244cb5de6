"""Tests for notification templates and the logging notifier."""

import pytest

from src.notifications import (
    DEFAULT_SUBJECT,
    build_email_body,
    build_notice,
    capitalize_condition,
    expand_targets,
    subject_for,
)
from src.tools.notifier import LoggingNotifier
from tests.conftest import CREATOR_ID, FAN_ID, make_booking


class TestTemplates:
    def test_capitalize_condition(self):
        assert capitalize_condition("success_booking") == "Success booking"

    def test_both_expands_to_fan_and_creator(self):
        assert expand_targets("cancel_booking") == ["fan", "creator"]

    def test_unknown_condition_has_no_targets(self):
        assert expand_targets("birthday") == []

    def test_subjects(self):
        assert subject_for("success_booking", "fan") == "Booking Confirmed"
        assert subject_for("success_booking", "creator") == "New Booking Confirmed"
        assert subject_for("birthday", "fan") == DEFAULT_SUBJECT

    def test_notice(self):
        assert build_notice("BK-1", "cancel_booking") == "Cancel booking for Booking ID BK-1"

    def test_email_body(self):
        body = build_email_body(make_booking("BK-1"), "Fan Frankie", "success_booking")
        assert "Dear Fan Frankie" in body
        assert "No: BK-1" in body
        assert "Success booking" in body
        assert "Date: 2025-07-12" in body
        assert "Time: 10:00:00" in body


class TestLoggingNotifier:
    @pytest.mark.asyncio
    async def test_renders_for_each_party(self, notifier):
        booking = make_booking("BK-1")
        await notifier.send(booking, "fan", "success_booking")
        await notifier.send(booking, "creator", "success_booking")

        fan_message, creator_message = notifier.sent
        assert fan_message["user_id"] == FAN_ID
        assert fan_message["recipient"] == f"user{FAN_ID}@example.com"
        assert "Dear Fan Frankie" in fan_message["body"]
        assert creator_message["user_id"] == CREATOR_ID
        assert creator_message["subject"] == "New Booking Confirmed"

    @pytest.mark.asyncio
    async def test_without_directory(self):
        notifier = LoggingNotifier()
        await notifier.send(make_booking("BK-1"), "fan", "cancel_booking")
        assert notifier.sent[0]["recipient"] == ""
        assert f"Dear User {FAN_ID}" in notifier.sent[0]["body"]
