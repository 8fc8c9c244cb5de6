from src.engine.lifecycle_manager import BookingLifecycleManager
from src.engine.settings_resolver import SettingsResolver
from src.engine.state_machine import can_transition, validate_transition
from src.engine.suspension_guard import SuspensionGuard, is_suspended

__all__ = [
    "BookingLifecycleManager",
    "SettingsResolver",
    "SuspensionGuard",
    "is_suspended",
    "can_transition",
    "validate_transition",
]
