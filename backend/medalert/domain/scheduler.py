"""Module: scheduler."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import NamedTuple

from medalert.core.errors import InvalidInterval
from medalert.domain.frequency import FixedInterval, IntervalRule, SpecificTimes


class NextDose(NamedTuple):
    at: datetime
    # Index into SpecificTimes.times of the slot that owns the next dose; None for rolling slots.
    position: int | None


def occurrence_near(moment: datetime, tod: time) -> datetime:
    # The day before, same day or day after, whichever puts tod closest to moment.
    candidates = [
        datetime.combine(moment.date() + timedelta(days=offset), tod, tzinfo=moment.tzinfo)
        for offset in (-1, 0, 1)
    ]
    return min(candidates, key=lambda c: abs(c - moment))


def _nearest_index(times: tuple[time, ...], moment: datetime) -> int:
    distances = [abs(occurrence_near(moment, tod) - moment) for tod in times]
    return distances.index(min(distances))


def plan_next_dose(
    rule: IntervalRule,
    current_dose_time: datetime,
    slot_index: int | None = None,
    scheduled_at: datetime | None = None,
) -> NextDose:
    """
    Work out when (and for specific times, on which slot) the next dose falls.

    Fixed intervals add the interval to the dose time. For specific times the
    slot that was just dosed is ``slot_index`` when known, otherwise the time
    of day nearest the dose. Its occurrence is ``scheduled_at`` when the caller
    knows it, otherwise the one nearest the dose. The successor in sorted order
    is chosen, rolling into the following day after the last slot. A late dose
    can put that successor in the past; the walk then continues for at most
    one full cycle. An equal configured time would repeat the dose just taken
    and raises ``InvalidInterval``.
    """
    if isinstance(rule, FixedInterval):
        candidate = current_dose_time + timedelta(hours=rule.hours)
        if candidate <= current_dose_time:
            raise InvalidInterval(f"Interval of {rule.hours} hours does not advance the schedule")
        return NextDose(at=candidate, position=None)

    if not isinstance(rule, SpecificTimes) or not rule.times:
        raise InvalidInterval("No times of day configured")

    times = rule.times
    count = len(times)
    if slot_index is None:
        slot_index = _nearest_index(times, current_dose_time)
    elif not 0 <= slot_index < count:
        raise InvalidInterval(f"Slot index {slot_index} outside {count} configured times")

    anchor = scheduled_at or occurrence_near(current_dose_time, times[slot_index])
    anchor_day = anchor.date()
    dosed = datetime.combine(anchor_day, times[slot_index], tzinfo=current_dose_time.tzinfo)
    for step in range(1, count + 1):
        position = (slot_index + step) % count
        day = anchor_day + timedelta(days=(slot_index + step) // count)
        candidate = datetime.combine(day, times[position], tzinfo=current_dose_time.tzinfo)
        if candidate <= dosed:
            raise InvalidInterval(
                f"Times {position} and {slot_index} are both {times[position].strftime('%H:%M')}; zero-length interval"
            )
        if candidate > current_dose_time:
            return NextDose(at=candidate, position=position)

    raise InvalidInterval("Configured times do not produce a later dose")


def compute_next_reminder(
    rule: IntervalRule,
    current_dose_time: datetime,
    slot_index: int | None = None,
    scheduled_at: datetime | None = None,
) -> datetime:
    return plan_next_dose(rule, current_dose_time, slot_index, scheduled_at).at


def first_reminder(rule: IntervalRule, start: datetime) -> NextDose:
    """Earliest reminder at or after ``start`` for a freshly created schedule."""
    if isinstance(rule, FixedInterval):
        if rule.hours <= 0:
            raise InvalidInterval(f"Interval of {rule.hours} hours does not advance the schedule")
        return NextDose(at=start, position=None)

    if not isinstance(rule, SpecificTimes) or not rule.times:
        raise InvalidInterval("No times of day configured")

    for offset in (0, 1):
        day = start.date() + timedelta(days=offset)
        for position, tod in enumerate(rule.times):
            candidate = datetime.combine(day, tod, tzinfo=start.tzinfo)
            if candidate >= start:
                return NextDose(at=candidate, position=position)

    raise InvalidInterval("Configured times do not produce a reminder")
