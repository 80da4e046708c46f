"""Module: frequency.

Maps the user-facing frequency tag of a medication onto the interval rule
the scheduler works with.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import time
from typing import Iterable, Union

from medalert.core.errors import InvalidInterval, UnknownFrequency

logger = logging.getLogger(__name__)

DAILY = "daily"
TWICE_DAILY = "twice_daily"
THRICE_DAILY = "thrice_daily"
EVERY_HOUR = "every_hour"
WEEKLY = "weekly"
MONTHLY = "monthly"
EVERY_X_HOURS = "every_x_hours"
SPECIFIC_TIMES = "specific_times"
CUSTOM = "custom"

FREQUENCY_TAGS = (
    DAILY,
    TWICE_DAILY,
    THRICE_DAILY,
    EVERY_HOUR,
    WEEKLY,
    MONTHLY,
    EVERY_X_HOURS,
    SPECIFIC_TIMES,
    CUSTOM,
)

# Fixed hour intervals for the tag-only frequencies. Monthly is approximated as 30 days.
FIXED_HOURS = {
    DAILY: 24,
    TWICE_DAILY: 12,
    THRICE_DAILY: 8,
    EVERY_HOUR: 1,
    WEEKLY: 168,
    MONTHLY: 720,
}

TIME_BASED = {SPECIFIC_TIMES, CUSTOM}

# Legacy stored form, e.g. "every_6_hours" or "every_6".
_EVERY_N_RE = re.compile(r"^every_(\d+)(?:_hours?)?$")


@dataclass(frozen=True)
class FixedInterval:
    hours: float


@dataclass(frozen=True)
class SpecificTimes:
    times: tuple[time, ...]


IntervalRule = Union[FixedInterval, SpecificTimes]


def is_time_based(frequency: str) -> bool:
    return (frequency or "").strip().lower() in TIME_BASED


def parse_time_of_day(value: str | time) -> time:
    """Accept ``HH:MM`` or ``HH:MM:SS`` strings (or a ``time``) and drop seconds' fractions."""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    try:
        return time.fromisoformat(value.strip()).replace(microsecond=0)
    except (AttributeError, ValueError):
        raise InvalidInterval(f"Invalid time of day: {value!r} (expected HH:MM)")


def resolve_frequency(
    frequency: str,
    hours: float | None = None,
    times: Iterable[str | time] | None = None,
) -> IntervalRule:
    """
    Resolve a frequency descriptor into an interval rule.

    ``hours`` parametrises ``every_x_hours``; ``times`` feeds ``specific_times``
    and ``custom``. Times are stable-sorted so equal entries keep list order.
    Unrecognised descriptors raise ``UnknownFrequency`` instead of falling back
    to a daily interval.
    """
    tag = (frequency or "").strip().lower()

    if tag in FIXED_HOURS:
        return FixedInterval(hours=FIXED_HOURS[tag])

    if tag == EVERY_X_HOURS:
        if hours is None:
            raise UnknownFrequency("every_x_hours requires an hour value")
        return FixedInterval(hours=float(hours))

    if tag in TIME_BASED:
        parsed = [parse_time_of_day(t) for t in (times or [])]
        if not parsed:
            raise InvalidInterval(f"{tag} requires at least one time of day")
        return SpecificTimes(times=tuple(sorted(parsed)))

    match = _EVERY_N_RE.match(tag)
    if match:
        return FixedInterval(hours=float(match.group(1)))

    logger.warning("Unrecognised frequency descriptor %r", frequency)
    raise UnknownFrequency(f"Unknown frequency: {frequency!r}")
