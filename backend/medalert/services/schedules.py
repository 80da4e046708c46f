"""Module: schedules."""

from __future__ import annotations

from datetime import datetime, time
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from medalert.db.models.medication import Medication
from medalert.db.models.schedule_slot import UPCOMING, ScheduleSlot
from medalert.domain.frequency import (
    IntervalRule,
    SpecificTimes,
    is_time_based,
    parse_time_of_day,
    resolve_frequency,
)
from medalert.domain.scheduler import first_reminder


def ordered_slots(slots: Sequence[ScheduleSlot]) -> list[ScheduleSlot]:
    # Same order resolve_frequency sorts times into: by time of day, then entry order.
    return sorted(slots, key=lambda s: (s.scheduled_time or time.min, s.position))


def load_slots(db: Session, medication_id) -> list[ScheduleSlot]:
    rows = db.execute(select(ScheduleSlot).where(ScheduleSlot.medication_id == medication_id)).scalars().all()
    return ordered_slots(rows)


def rule_for(medication: Medication, slots: Sequence[ScheduleSlot]) -> IntervalRule:
    times = [s.scheduled_time for s in sorted(slots, key=lambda s: s.position) if s.scheduled_time is not None]
    return resolve_frequency(medication.frequency, medication.frequency_value, times)


def build_slots(medication: Medication, times: Sequence[str | time] | None, start: datetime) -> list[ScheduleSlot]:
    """
    Create the schedule slots for a new medication.

    Specific-times frequencies get one slot per time of day; interval
    frequencies get a single rolling slot whose first reminder is ``start``.
    The frequency is resolved first so a bad descriptor aborts creation.
    """
    parsed = [parse_time_of_day(t) for t in (times or [])] if is_time_based(medication.frequency) else []
    rule = resolve_frequency(medication.frequency, medication.frequency_value, parsed)
    first = first_reminder(rule, start)

    if isinstance(rule, SpecificTimes):
        slots = [
            ScheduleSlot(
                medication_id=medication.medication_id,
                position=i,
                scheduled_time=t,
                status=UPCOMING,
                taken=False,
            )
            for i, t in enumerate(parsed)
        ]
        # first.position indexes the sorted times; map it back to a slot.
        ordered_slots(slots)[first.position].next_reminder_at = first.at
        return slots

    return [
        ScheduleSlot(
            medication_id=medication.medication_id,
            position=0,
            status=UPCOMING,
            taken=False,
            next_reminder_at=first.at,
        )
    ]
