"""
Recurring task schedule.

WHAT: Date arithmetic for tasks that repeat every N days, weeks, months
or years, bounded by an end date and/or a maximum occurrence count.

WHY: There is no scheduler; a recurring task only records when it is next
due. Occurrences are computed from the series start rather than by
repeated stepping, so month-end dates clamp per occurrence without
drifting (Jan 31 -> Feb 28 -> Mar 31).

HOW: ``dateutil.relativedelta`` for calendar-aware intervals.
"""

from datetime import datetime
from enum import Enum
from itertools import islice
from typing import Any, Dict, Iterator, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

from assetdesk.core.exceptions import ValidationError
from assetdesk.dao.query import normalize_value


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


_UNITS = {
    RecurrenceFrequency.DAILY: "days",
    RecurrenceFrequency.WEEKLY: "weeks",
    RecurrenceFrequency.MONTHLY: "months",
    RecurrenceFrequency.YEARLY: "years",
}


def step(frequency: str, interval: int, count: int = 1) -> relativedelta:
    """Offset of the ``count``-th occurrence from the series start."""
    return relativedelta(**{_UNITS[RecurrenceFrequency(frequency)]: interval * count})


def build_config(recurring: Optional[Mapping[str, Any]], due_date: Optional[datetime]) -> Optional[Dict[str, Any]]:
    """
    Validate recurrence input and produce the stored config.

    A task without a due date cannot recur: returns None.

    Raises:
        ValidationError: Unknown frequency, non-positive interval or
            occurrence count, end date before the first due date
    """
    if not recurring or due_date is None:
        return None

    due_date = normalize_value(due_date)
    try:
        frequency = RecurrenceFrequency(recurring.get("frequency"))
    except ValueError:
        raise ValidationError(message="Invalid recurrence frequency", field="recurring.frequency")

    interval = recurring.get("interval") or 1
    if not isinstance(interval, int) or interval < 1:
        raise ValidationError(message="Recurrence interval must be a positive integer", field="recurring.interval")

    max_occurrences = recurring.get("maxOccurrences")
    if max_occurrences is not None and (not isinstance(max_occurrences, int) or max_occurrences < 1):
        raise ValidationError(message="maxOccurrences must be a positive integer", field="recurring.maxOccurrences")

    end_date = normalize_value(recurring.get("endDate"))
    if end_date is not None and end_date < due_date:
        raise ValidationError(message="Recurrence end date is before the due date", field="recurring.endDate")

    return {
        "frequency": frequency.value,
        "interval": interval,
        "endDate": end_date,
        "maxOccurrences": max_occurrences,
        "startDate": due_date,
        "nextDueDate": due_date,
        "occurrenceCount": 0,
    }


def occurrences(config: Mapping[str, Any]) -> Iterator[datetime]:
    """
    Due dates of the series in order, starting with the first.

    Unbounded when the config has neither ``endDate`` nor ``maxOccurrences``.
    """
    start = config.get("startDate") or config.get("nextDueDate")
    if start is None:
        return
    end_date = config.get("endDate")
    max_occurrences = config.get("maxOccurrences")

    n = 0
    while max_occurrences is None or n < max_occurrences:
        candidate = start + step(config["frequency"], config.get("interval") or 1, n)
        if end_date is not None and candidate > end_date:
            return
        yield candidate
        n += 1


def preview(config: Mapping[str, Any], limit: int = 5) -> List[datetime]:
    return list(islice(occurrences(config), limit))


def next_due_date(config: Mapping[str, Any], after: Optional[datetime] = None) -> Optional[datetime]:
    """
    First occurrence strictly after ``after`` (default: the current
    ``nextDueDate``), or None when the series is exhausted.
    """
    after = normalize_value(after) if after is not None else config.get("nextDueDate")
    if after is None:
        return None
    for candidate in occurrences(config):
        if candidate > after:
            return candidate
    return None


def advance(config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Config after the current occurrence is completed.

    ``nextDueDate`` is None once ``endDate`` or ``maxOccurrences`` is used up.
    """
    updated = dict(config)
    updated["occurrenceCount"] = (config.get("occurrenceCount") or 0) + 1
    updated["nextDueDate"] = next_due_date(config)
    return updated
