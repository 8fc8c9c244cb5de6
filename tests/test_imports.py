"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_booking_schema(self):
        from src.schemas.booking_schema import Booking, BookingStatus, Party
        assert BookingStatus.PENDING == "pending"
        assert Party.BOTH == "both"
        assert Booking is not None

    def test_import_policy_schema(self):
        from src.schemas.policy_schema import SETTINGS_KEYS, BookingPolicy
        assert SETTINGS_KEYS["min_booking_time"] == "min_booking_minutes"
        assert "id" not in SETTINGS_KEYS
        assert BookingPolicy().suspensions == []


class TestAvailabilityImports:
    def test_package_reexports(self):
        from src.availability import (
            ConflictChecker,
            calculate_price,
            complement,
            expand_occurrences,
            merge_effective_windows,
            validate_duration,
        )
        assert callable(calculate_price)
        assert callable(complement)
        assert callable(expand_occurrences)
        assert callable(merge_effective_windows)
        assert callable(validate_duration)
        assert ConflictChecker is not None


class TestEngineImports:
    def test_package_reexports(self):
        from src.engine import (
            BookingLifecycleManager,
            SettingsResolver,
            SuspensionGuard,
            can_transition,
            is_suspended,
            validate_transition,
        )
        assert BookingLifecycleManager is not None
        assert callable(can_transition)
        assert SettingsResolver is not None
        assert SuspensionGuard is not None
        assert callable(is_suspended)
        assert callable(validate_transition)


class TestToolImports:
    def test_collaborators(self):
        from src.tools.identity import InMemoryIdentityDirectory
        from src.tools.ledger import InMemoryLedger
        from src.tools.notifier import LoggingNotifier
        from src.tools.storage import InMemoryStore
        assert InMemoryStore().available
        assert InMemoryLedger().released_deposits == []
        assert LoggingNotifier().sent == []
        assert InMemoryIdentityDirectory().lookups == 0


class TestErrorImports:
    def test_every_kind_has_an_error_class(self):
        from src.errors import BookingEngineError, ErrorKind

        def subclasses(cls):
            for sub in cls.__subclasses__():
                yield sub
                yield from subclasses(sub)

        kinds = {cls.kind for cls in subclasses(BookingEngineError)}
        assert kinds == set(ErrorKind) - {ErrorKind.INTERNAL_ERROR}
