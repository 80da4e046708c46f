"""Module: transitions.

Dose status transitions for a medication's schedule slots:

    upcoming -> taken | skipped | missed -> upcoming (next cycle)

Every transition loads the medication's full schedule under a per-medication
lock, applies the slot change, the dose-event append, the streak update and
(on take) the inventory change in one SQLAlchemy transaction, then hands any
notices to the dispatcher once the commit has gone through.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from medalert.core.clock import to_utc_naive, utcnow
from medalert.core.config import settings
from medalert.core.errors import (
    ConcurrentModification,
    InvalidDelay,
    InvalidQuantity,
    InvalidTransition,
    MedicationNotFound,
    SlotNotFound,
)
from medalert.db.adapters import inventory_state, store_inventory, store_streak, streak_state
from medalert.db.models.dose_event import DoseEvent
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.medication import Medication
from medalert.db.models.refill_log import RefillLog
from medalert.db.models.schedule_slot import MISSED, SKIPPED, TAKEN, UPCOMING, ScheduleSlot
from medalert.db.models.streak import Streak
from medalert.db.models.user import User
from medalert.domain import streaks
from medalert.domain.scheduler import NextDose, occurrence_near, plan_next_dose
from medalert.services.notifications import (
    DOSE,
    LOW_SUPPLY,
    REMINDER,
    DoseNotice,
    NotificationDispatcher,
    channels_for,
)
from medalert.services.schedules import load_slots, rule_for

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0


class MedicationLocks:
    """Process-local mutual exclusion keyed by medication id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[uuid.UUID, threading.Lock] = {}

    @contextmanager
    def hold(self, medication_id: uuid.UUID, timeout: float = LOCK_TIMEOUT_SECONDS):
        with self._guard:
            lock = self._locks.setdefault(medication_id, threading.Lock())
        if not lock.acquire(timeout=timeout):
            raise ConcurrentModification(f"Medication {medication_id} is busy with another dose action; retry")
        try:
            yield
        finally:
            lock.release()


# Shared by every service instance in the process.
medication_locks = MedicationLocks()


@dataclass
class ScheduleState:
    medication: Medication
    user: User | None
    slots: list[ScheduleSlot]
    streak: Streak
    inventory: MedicationInventory | None

    @property
    def timed_slots(self) -> list[ScheduleSlot]:
        return [s for s in self.slots if s.scheduled_time is not None]

    def slot_index(self, slot: ScheduleSlot) -> int | None:
        timed = self.timed_slots
        return timed.index(slot) if slot in timed else None

    def successor(self, slot: ScheduleSlot, plan: NextDose) -> ScheduleSlot:
        if plan.position is None:
            return slot
        return self.timed_slots[plan.position]

    def make_actionable(self, target: ScheduleSlot, at: datetime, reopen: bool) -> None:
        # Exactly one slot carries the next reminder.
        for s in self.slots:
            if s is not target:
                s.next_reminder_at = None
        target.next_reminder_at = at
        if reopen:
            target.status = UPCOMING
            target.taken = False


@dataclass(frozen=True)
class TakeResult:
    event: DoseEvent
    next_reminder: datetime
    inventory_status: str | None = None
    remaining_quantity: float | None = None


@dataclass(frozen=True)
class SkipResult:
    event: DoseEvent
    next_reminder: datetime


@dataclass(frozen=True)
class DelayResult:
    event: DoseEvent
    new_reminder: datetime


@dataclass(frozen=True)
class RefillResult:
    inventory: MedicationInventory
    log: RefillLog
    threshold_restored: bool


def _require_upcoming(slot: ScheduleSlot, action: str) -> None:
    if slot.status != UPCOMING:
        raise InvalidTransition(f"Cannot record slot {slot.slot_id} as {action}: the dose is already {slot.status}")


def _scheduled_for(slot: ScheduleSlot, moment: datetime) -> datetime:
    # A delayed reminder still belongs to the slot's own time-of-day occurrence.
    reference = slot.next_reminder_at or moment
    if slot.scheduled_time is not None:
        return occurrence_near(reference, slot.scheduled_time)
    return reference


class DoseTransitionService:
    """
    Entry point for every mutation of a medication's slots, streak and inventory.

    Built once per request (or sweep pass) around a session and passed to the
    call sites that need it.
    """

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher | None = None,
        *,
        locks: MedicationLocks = medication_locks,
        clock: Callable[[], datetime] = utcnow,
        default_channels: Iterable[str] | None = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.locks = locks
        self.clock = clock
        self.default_channels = list(default_channels if default_channels is not None else settings.default_channels)

    # -------------------------
    # Operations
    # -------------------------
    def take(self, slot_id: uuid.UUID, actual_time: datetime | None = None, quantity: float | None = None) -> TakeResult:
        if quantity is not None and quantity <= 0:
            raise InvalidQuantity(f"Dose quantity must be positive (got {quantity})")
        taken_at = to_utc_naive(actual_time) or self.clock()

        def apply(state: ScheduleState, slot: ScheduleSlot):
            _require_upcoming(slot, streaks.TAKEN)
            scheduled_at = _scheduled_for(slot, taken_at)
            plan = plan_next_dose(
                rule_for(state.medication, state.slots), taken_at, state.slot_index(slot), scheduled_at
            )

            slot.status = TAKEN
            slot.taken = True
            slot.last_taken_at = taken_at
            successor = state.successor(slot, plan)
            state.make_actionable(successor, plan.at, reopen=successor is not slot)

            inventory_status = remaining = None
            consumed = quantity
            if state.inventory is not None:
                updated, inventory_status = inventory_state(state.inventory).consume(quantity)
                consumed = quantity if quantity is not None else updated.dose_amount
                store_inventory(state.inventory, updated)
                state.inventory.updated_at = taken_at
                if inventory_status:
                    state.inventory.refill_reminder_sent = True
                remaining = updated.current_quantity

            store_streak(state.streak, streak_state(state.streak).on_taken(taken_at))
            event = self._append(
                state, slot, streaks.TAKEN, scheduled_at=scheduled_at, taken_at=taken_at, quantity=consumed
            )

            notices = [self._notice(state, DOSE, event, next_reminder_at=plan.at)]
            if inventory_status:
                notices.append(
                    self._notice(
                        state,
                        LOW_SUPPLY,
                        event,
                        inventory_status=inventory_status,
                        remaining_quantity=remaining,
                    )
                )
            result = TakeResult(
                event=event,
                next_reminder=plan.at,
                inventory_status=inventory_status,
                remaining_quantity=remaining,
            )
            return result, notices

        return self._transition(slot_id, apply)

    def skip(self, slot_id: uuid.UUID, reason: str | None = None, now: datetime | None = None) -> SkipResult:
        at = to_utc_naive(now) or self.clock()

        def apply(state: ScheduleState, slot: ScheduleSlot):
            _require_upcoming(slot, streaks.SKIPPED)
            # Skipping keeps the cadence of the skipped dose, not of the moment it was skipped.
            base = slot.next_reminder_at or at
            scheduled_at = _scheduled_for(slot, at)
            plan = plan_next_dose(rule_for(state.medication, state.slots), base, state.slot_index(slot), scheduled_at)

            slot.status = SKIPPED
            slot.taken = False
            successor = state.successor(slot, plan)
            state.make_actionable(successor, plan.at, reopen=successor is not slot)

            store_streak(state.streak, streak_state(state.streak).on_skipped_or_missed(streaks.SKIPPED))
            event = self._append(state, slot, streaks.SKIPPED, scheduled_at=scheduled_at, reason=reason)
            return SkipResult(event=event, next_reminder=plan.at), [
                self._notice(state, DOSE, event, next_reminder_at=plan.at)
            ]

        return self._transition(slot_id, apply)

    def miss(self, slot_id: uuid.UUID, now: datetime | None = None) -> DoseEvent:
        """Record a missed dose. The schedule is left where it is; the sweep advances it."""
        at = to_utc_naive(now) or self.clock()

        def apply(state: ScheduleState, slot: ScheduleSlot):
            _require_upcoming(slot, streaks.MISSED)
            scheduled_at = _scheduled_for(slot, at)
            slot.status = MISSED
            slot.taken = False

            store_streak(state.streak, streak_state(state.streak).on_skipped_or_missed(streaks.MISSED))
            event = self._append(state, slot, streaks.MISSED, scheduled_at=scheduled_at)
            return event, [self._notice(state, DOSE, event)]

        return self._transition(slot_id, apply)

    def delay(self, slot_id: uuid.UUID, hours: float, now: datetime | None = None) -> DelayResult:
        if hours is None or hours <= 0:
            raise InvalidDelay(f"Delay must be a positive number of hours (got {hours})")
        at = to_utc_naive(now) or self.clock()
        new_reminder = at + timedelta(hours=hours)

        def apply(state: ScheduleState, slot: ScheduleSlot):
            previous = slot.next_reminder_at
            state.make_actionable(slot, new_reminder, reopen=True)
            event = self._append(state, slot, streaks.DELAYED, scheduled_at=previous, delay_hours=hours)
            return DelayResult(event=event, new_reminder=new_reminder), [
                self._notice(state, DOSE, event, next_reminder_at=new_reminder)
            ]

        return self._transition(slot_id, apply)

    def reset(self, slot_id: uuid.UUID, now: datetime | None = None) -> ScheduleSlot:
        """Put a slot back to upcoming without logging a dose event."""
        at = to_utc_naive(now) or self.clock()

        def apply(state: ScheduleState, slot: ScheduleSlot):
            slot.status = UPCOMING
            slot.taken = False
            if not any(s.next_reminder_at for s in state.slots):
                slot.next_reminder_at = at
            return slot, []

        return self._transition(slot_id, apply)

    def advance_missed(self, slot_id: uuid.UUID, now: datetime | None = None) -> datetime | None:
        """
        Move the schedule past a missed dose.

        Doses that fell due while nothing was advancing the schedule are not
        back-filled; the walk stops at the first reminder after ``now``.
        """
        at = to_utc_naive(now) or self.clock()

        def apply(state: ScheduleState, slot: ScheduleSlot):
            if slot.status != MISSED or slot.next_reminder_at is None:
                return None, []
            rule = rule_for(state.medication, state.slots)
            plan = plan_next_dose(
                rule, slot.next_reminder_at, state.slot_index(slot), _scheduled_for(slot, slot.next_reminder_at)
            )
            while plan.at <= at:
                plan = plan_next_dose(rule, plan.at, plan.position)
            state.make_actionable(state.successor(slot, plan), plan.at, reopen=True)
            return plan.at, []

        return self._transition(slot_id, apply)

    def remind(self, slot_id: uuid.UUID) -> bool:
        """Send the reminder for a slot's upcoming dose once per reminder time."""

        def apply(state: ScheduleState, slot: ScheduleSlot):
            due = slot.next_reminder_at
            if slot.status != UPCOMING or due is None or slot.reminded_for == due:
                return False, []
            slot.reminded_for = due
            return True, [self._notice(state, REMINDER, None, next_reminder_at=due)]

        return self._transition(slot_id, apply)

    def refill(
        self,
        medication_id: uuid.UUID,
        quantity: float,
        *,
        refill_source: str = "other",
        notes: str | None = None,
        refilled_at: datetime | None = None,
    ) -> RefillResult:
        at = to_utc_naive(refilled_at) or self.clock()

        def apply(state: ScheduleState):
            inventory = state.inventory
            if inventory is None:
                inventory = MedicationInventory(
                    medication_id=medication_id,
                    current_quantity=0,
                    dose_amount=1,
                    total_refilled=0,
                    refill_reminder_sent=False,
                )
                self.db.add(inventory)

            previous = inventory.current_quantity or 0
            updated, restored = inventory_state(inventory).refill(quantity)
            store_inventory(inventory, updated)
            inventory.last_refill_date = at
            inventory.total_refilled = (inventory.total_refilled or 0) + quantity
            inventory.updated_at = at
            if updated.status() is None:
                inventory.refill_reminder_sent = False

            log = RefillLog(
                refill_id=uuid.uuid4(),
                medication_id=medication_id,
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=updated.current_quantity,
                refill_source=refill_source,
                notes=notes,
                refilled_at=at,
            )
            self.db.add(log)
            logger.info(
                "Medication %s refilled by %s (%s -> %s)", medication_id, quantity, previous, updated.current_quantity
            )
            return RefillResult(inventory=inventory, log=log, threshold_restored=restored), []

        return self._locked(medication_id, apply)

    # -------------------------
    # Helpers
    # -------------------------
    def _transition(self, slot_id: uuid.UUID, apply):
        medication_id = self.db.execute(
            select(ScheduleSlot.medication_id).where(ScheduleSlot.slot_id == slot_id)
        ).scalar_one_or_none()
        if medication_id is None:
            raise SlotNotFound(f"Schedule slot {slot_id} not found")

        def apply_to_slot(state: ScheduleState):
            slot = next((s for s in state.slots if s.slot_id == slot_id), None)
            if slot is None:
                raise SlotNotFound(f"Schedule slot {slot_id} not found")
            return apply(state, slot)

        return self._locked(medication_id, apply_to_slot)

    def _locked(self, medication_id: uuid.UUID, apply):
        with self.locks.hold(medication_id):
            self.db.expire_all()
            try:
                state = self._load(medication_id)
                result, notices = apply(state)
                state.medication.last_action_at = self.clock()
                self.db.commit()
            except StaleDataError:
                self.db.rollback()
                raise ConcurrentModification(
                    f"Medication {medication_id} was changed by another request; nothing was recorded"
                )
            except Exception:
                self.db.rollback()
                raise

        self._notify(notices)
        return result

    def _load(self, medication_id: uuid.UUID) -> ScheduleState:
        medication = self.db.execute(
            select(Medication).where(Medication.medication_id == medication_id)
        ).scalar_one_or_none()
        if not medication:
            raise MedicationNotFound(f"Medication {medication_id} not found")

        user = self.db.execute(select(User).where(User.user_id == medication.user_id)).scalar_one_or_none()
        streak = self.db.execute(select(Streak).where(Streak.medication_id == medication_id)).scalar_one_or_none()
        if streak is None:
            streak = store_streak(Streak(medication_id=medication_id), streaks.StreakState())
            self.db.add(streak)
        inventory = self.db.execute(
            select(MedicationInventory).where(MedicationInventory.medication_id == medication_id)
        ).scalar_one_or_none()

        return ScheduleState(
            medication=medication,
            user=user,
            slots=load_slots(self.db, medication_id),
            streak=streak,
            inventory=inventory,
        )

    def _append(self, state: ScheduleState, slot: ScheduleSlot, action: str, **fields) -> DoseEvent:
        event = DoseEvent(
            event_id=uuid.uuid4(),
            medication_id=state.medication.medication_id,
            slot_id=slot.slot_id,
            action=action,
            recorded_at=self.clock(),
            **fields,
        )
        self.db.add(event)
        logger.info(
            "Medication %s slot %s: %s (scheduled %s)",
            state.medication.medication_id, slot.slot_id, action, fields.get("scheduled_at"),
        )
        return event

    def _notice(self, state: ScheduleState, kind: str, event: DoseEvent | None, **extra) -> tuple[DoseNotice, list[str]]:
        notice = DoseNotice(
            medication_id=state.medication.medication_id,
            user_id=state.medication.user_id,
            medication_name=state.medication.name,
            dosage=state.medication.dosage,
            kind=kind,
            action=event.action if event is not None else None,
            event_id=event.event_id if event is not None else None,
            occurred_at=self.clock(),
            **extra,
        )
        preferences = state.user.notification_preferences if state.user else None
        return notice, channels_for(preferences, kind, notice.action, self.default_channels)

    def _notify(self, notices: list[tuple[DoseNotice, list[str]]]) -> None:
        if self.dispatcher is None:
            return
        for notice, channels in notices:
            if not channels:
                continue
            try:
                self.dispatcher.submit(notice, channels)
            except RuntimeError as exc:
                # Executor already shut down; the dose itself is recorded.
                logger.warning("Could not queue %s notice for %s: %s", notice.kind, notice.medication_id, exc)
