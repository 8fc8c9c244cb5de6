from src.availability.conflicts import ConflictChecker, free_slots, has_conflict
from src.availability.duration import (
    check_duration_bounds,
    is_time_fully_within_effective_windows,
    validate_duration,
)
from src.availability.pricing import calculate_price, compute_crossover
from src.availability.recurrence import expand_occurrences
from src.availability.time_windows import (
    complement,
    merge_effective_windows,
    normalize,
    resolve_effective_hours,
)

__all__ = [
    "merge_effective_windows", "resolve_effective_hours", "complement", "normalize",
    "check_duration_bounds", "validate_duration", "is_time_fully_within_effective_windows",
    "compute_crossover", "calculate_price",
    "ConflictChecker", "has_conflict", "free_slots",
    "expand_occurrences",
]
