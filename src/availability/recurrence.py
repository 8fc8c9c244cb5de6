"""Recurrence-rule expansion limited to "which occurrences fall in a window"."""

import logging
from datetime import datetime

from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrulestr

from src.errors import InvalidRecurrenceRuleError

logger = logging.getLogger(__name__)


def _parse_rule(rule: str, dtstart: datetime):
    try:
        return rrulestr(rule, dtstart=dtstart)
    except (ValueError, TypeError) as exc:
        raise InvalidRecurrenceRuleError(f"Invalid recurrence rule {rule!r}: {exc}") from None


def expand_occurrences(
    rule: str,
    start: datetime,
    end: datetime,
    now: datetime,
    horizon_months: int = 3,
) -> list[tuple[datetime, datetime]]:
    """
    Concrete ``(start, end)`` occurrences between ``now`` and the horizon.

    Every occurrence keeps the requested time of day and duration; only the
    date comes from the rule.
    """
    duration = end - start
    rule_set = _parse_rule(rule, start)
    horizon = now + relativedelta(months=horizon_months)

    occurrences = []
    for occurrence in rule_set.between(now, horizon, inc=True):
        occ_start = datetime.combine(occurrence.date(), start.time())
        occurrences.append((occ_start, occ_start + duration))

    logger.debug("Rule %r expands to %d occurrences before %s", rule, len(occurrences), horizon)
    return occurrences


def has_occurrence_between(
    rule: str, dtstart: datetime, window_start: datetime, window_end: datetime
) -> bool:
    """Check whether the rule anchored at ``dtstart`` fires inside the window."""
    rule_set = _parse_rule(rule, dtstart)
    return bool(rule_set.between(window_start, window_end, inc=True))
