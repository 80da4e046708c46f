"""Module: sweep."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from medalert.core.clock import to_utc_naive, utcnow
from medalert.core.config import settings
from medalert.core.errors import ConcurrentModification, MedAlertError, SlotNotFound
from medalert.db.models.medication import Medication
from medalert.db.models.schedule_slot import MISSED, SKIPPED, TAKEN, UPCOMING, ScheduleSlot
from medalert.services.notifications import NotificationDispatcher
from medalert.services.transitions import DoseTransitionService

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    ran_at: datetime
    missed: list[uuid.UUID] = field(default_factory=list)
    advanced: list[uuid.UUID] = field(default_factory=list)
    reopened: list[uuid.UUID] = field(default_factory=list)
    reminded: list[uuid.UUID] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "ran_at": self.ran_at,
            "missed": [str(i) for i in self.missed],
            "advanced": [str(i) for i in self.advanced],
            "reopened": [str(i) for i in self.reopened],
            "reminded": [str(i) for i in self.reminded],
            "errors": self.errors,
        }


class ReminderSweep:
    """
    Periodic pass over active schedules.

    1. upcoming doses older than the grace window are recorded as missed;
    2. missed doses have their schedule advanced;
    3. taken/skipped slots whose next reminder has come due reopen as upcoming;
    4. doses due inside the reminder window get one reminder notice each.

    All slot changes go through DoseTransitionService.
    """

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher | None = None,
        *,
        grace_minutes: int | None = None,
        window_minutes: int | None = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.grace = timedelta(minutes=settings.missed_grace_minutes if grace_minutes is None else grace_minutes)
        self.window = timedelta(minutes=settings.reminder_window_minutes if window_minutes is None else window_minutes)

    def _slot_ids(self, *criteria) -> list[uuid.UUID]:
        stmt = (
            select(ScheduleSlot.slot_id)
            .join(Medication, Medication.medication_id == ScheduleSlot.medication_id)
            .where(Medication.active.is_(True), *criteria)
            .order_by(ScheduleSlot.next_reminder_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def run(self, now: datetime | None = None) -> SweepReport:
        now = to_utc_naive(now) or utcnow()
        engine = DoseTransitionService(self.db, self.dispatcher, clock=lambda: now)
        report = SweepReport(ran_at=now)

        overdue = self._slot_ids(
            ScheduleSlot.status == UPCOMING,
            ScheduleSlot.next_reminder_at.is_not(None),
            ScheduleSlot.next_reminder_at < now - self.grace,
        )
        for slot_id in overdue:
            if self._attempt(report, slot_id, lambda: engine.miss(slot_id, now=now)):
                report.missed.append(slot_id)

        missed = self._slot_ids(
            ScheduleSlot.status == MISSED,
            ScheduleSlot.next_reminder_at.is_not(None),
            ScheduleSlot.next_reminder_at <= now,
        )
        for slot_id in missed:
            if self._attempt(report, slot_id, lambda: engine.advance_missed(slot_id, now=now)):
                report.advanced.append(slot_id)

        due = self._slot_ids(
            ScheduleSlot.status.in_((TAKEN, SKIPPED)),
            ScheduleSlot.next_reminder_at.is_not(None),
            ScheduleSlot.next_reminder_at <= now,
        )
        for slot_id in due:
            if self._attempt(report, slot_id, lambda: engine.reset(slot_id, now=now)):
                report.reopened.append(slot_id)

        upcoming = self._slot_ids(
            ScheduleSlot.status == UPCOMING,
            ScheduleSlot.next_reminder_at.is_not(None),
            ScheduleSlot.next_reminder_at <= now + self.window,
        )
        for slot_id in upcoming:
            if self._attempt(report, slot_id, lambda: engine.remind(slot_id)):
                report.reminded.append(slot_id)

        logger.info(
            "Sweep at %s: missed=%d advanced=%d reopened=%d reminded=%d errors=%d",
            now, len(report.missed), len(report.advanced), len(report.reopened),
            len(report.reminded), len(report.errors),
        )
        return report

    def _attempt(self, report: SweepReport, slot_id: uuid.UUID, action) -> bool:
        # One slot failing must not stop the pass; the next sweep retries it.
        try:
            return bool(action())
        except (SlotNotFound, ConcurrentModification) as exc:
            logger.info("Sweep skipped slot %s: %s", slot_id, exc.detail)
        except MedAlertError as exc:
            logger.warning("Sweep could not process slot %s: %s", slot_id, exc.detail)
            report.errors.append(f"{slot_id}: {exc.detail}")
        return False
