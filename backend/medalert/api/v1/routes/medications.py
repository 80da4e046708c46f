"""Module: medications."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, parse_uuid
from medalert.core.clock import to_utc_naive, utcnow
from medalert.core.errors import InvalidQuantity, MedicationNotFound, UserNotFound
from medalert.db.adapters import inventory_state, store_streak, streak_payload, streak_state
from medalert.db.models.dose_event import DoseEvent
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.medication import Medication
from medalert.db.models.notification_log import NotificationLog
from medalert.db.models.refill_log import RefillLog
from medalert.db.models.schedule_slot import ScheduleSlot
from medalert.db.models.streak import Streak
from medalert.db.models.user import User
from medalert.domain.streaks import StreakState
from medalert.services.schedules import build_slots, load_slots
from medalert.services.transitions import medication_locks

router = APIRouter()


class InventoryPayload(BaseModel):
    current_quantity: float
    dose_amount: float = 1
    refill_threshold: float | None = None
    unit: str | None = None
    pharmacy_info: str | None = None


class MedicationCreatePayload(BaseModel):
    user_id: str
    name: str
    dosage: str | None = None
    instructions: str | None = None
    medication_type: str | None = None
    with_food: bool = False
    frequency: str
    # Hours for every_x_hours.
    frequency_value: float | None = None
    # "HH:MM" times of day for specific_times / custom.
    times: list[str] = []
    # First reminder for interval schedules; defaults to now.
    start_at: datetime | None = None
    start_date: date | None = None
    end_date: date | None = None
    inventory: InventoryPayload | None = None


# -------------------------
# Helpers
# -------------------------
def _normalize_optional(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned if cleaned else None


def get_medication(db: Session, medication_id: str) -> Medication:
    mid = parse_uuid(medication_id, "medication_id")
    medication = db.execute(select(Medication).where(Medication.medication_id == mid)).scalar_one_or_none()
    if not medication:
        raise MedicationNotFound(f"Medication {mid} not found")
    return medication


def slot_out(slot: ScheduleSlot) -> dict:
    return {
        "slot_id": str(slot.slot_id),
        "position": slot.position,
        "scheduled_time": slot.scheduled_time.strftime("%H:%M") if slot.scheduled_time else None,
        "status": slot.status,
        "taken": slot.taken,
        "last_taken_at": slot.last_taken_at,
        "next_reminder_at": slot.next_reminder_at,
    }


def event_out(event: DoseEvent) -> dict:
    return {
        "event_id": str(event.event_id),
        "medication_id": str(event.medication_id),
        "slot_id": str(event.slot_id) if event.slot_id else None,
        "action": event.action,
        "scheduled_at": event.scheduled_at,
        "taken_at": event.taken_at,
        "quantity": event.quantity,
        "reason": event.reason,
        "delay_hours": event.delay_hours,
        "recorded_at": event.recorded_at,
    }


def inventory_out(inventory: MedicationInventory) -> dict:
    return {
        "medication_id": str(inventory.medication_id),
        "current_quantity": inventory.current_quantity,
        "dose_amount": inventory.dose_amount,
        "refill_threshold": inventory.refill_threshold,
        "unit": inventory.unit,
        "pharmacy_info": inventory.pharmacy_info,
        "status": inventory_state(inventory).status(),
        "last_refill_date": inventory.last_refill_date,
        "total_refilled": inventory.total_refilled,
        "refill_reminder_sent": inventory.refill_reminder_sent,
    }


def _medication_out(medication: Medication) -> dict:
    return {
        "id": str(medication.medication_id),
        "user_id": str(medication.user_id),
        "name": medication.name,
        "dosage": medication.dosage,
        "instructions": medication.instructions,
        "medication_type": medication.medication_type,
        "with_food": medication.with_food,
        "frequency": medication.frequency,
        "frequency_value": medication.frequency_value,
        "start_date": medication.start_date,
        "end_date": medication.end_date,
        "active": medication.active,
        "created_at": medication.created_at,
    }


def _medication_detail(db: Session, medication: Medication) -> dict:
    mid = medication.medication_id
    streak = db.execute(select(Streak).where(Streak.medication_id == mid)).scalar_one_or_none()
    inventory = db.execute(
        select(MedicationInventory).where(MedicationInventory.medication_id == mid)
    ).scalar_one_or_none()
    slots = load_slots(db, mid)

    out = _medication_out(medication)
    out["slots"] = [slot_out(s) for s in slots]
    out["next_reminder_at"] = next((s.next_reminder_at for s in slots if s.next_reminder_at), None)
    out["streak"] = streak_payload(mid, streak_state(streak))
    out["inventory"] = inventory_out(inventory) if inventory else None
    return out


# -------------------------
# Endpoints
# -------------------------

@router.get("", summary="List medications for a user")
def list_medications(
    user_id: str = Query(...),
    include_inactive: bool = False,
    limit: int = 200,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    uid = parse_uuid(user_id, "user_id")
    stmt = select(Medication).where(Medication.user_id == uid)
    if not include_inactive:
        stmt = stmt.where(Medication.active.is_(True))
    stmt = stmt.order_by(Medication.created_at).offset(offset).limit(limit)

    rows = db.execute(stmt).scalars().all()
    return [_medication_detail(db, m) for m in rows]


@router.post("", summary="Create a medication with its schedule")
def create_medication(payload: MedicationCreatePayload, db: Session = Depends(get_db)):
    uid = parse_uuid(payload.user_id, "user_id")
    user = db.execute(select(User).where(User.user_id == uid)).scalar_one_or_none()
    if not user:
        raise UserNotFound(f"User {uid} not found")

    if payload.inventory is not None and (payload.inventory.current_quantity < 0 or payload.inventory.dose_amount <= 0):
        raise InvalidQuantity("Inventory quantity must not be negative and dose amount must be positive")

    medication = Medication(
        medication_id=uuid.uuid4(),
        user_id=uid,
        name=payload.name.strip(),
        dosage=_normalize_optional(payload.dosage),
        instructions=_normalize_optional(payload.instructions),
        medication_type=_normalize_optional(payload.medication_type),
        with_food=payload.with_food,
        frequency=payload.frequency.strip(),
        frequency_value=payload.frequency_value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        active=True,
    )
    # Resolves the frequency; a bad descriptor fails here before anything is added.
    slots = build_slots(medication, payload.times, to_utc_naive(payload.start_at) or utcnow())

    db.add(medication)
    db.flush()
    db.add_all(slots)
    db.add(store_streak(Streak(medication_id=medication.medication_id), StreakState()))

    if payload.inventory is not None:
        db.add(
            MedicationInventory(
                medication_id=medication.medication_id,
                current_quantity=payload.inventory.current_quantity,
                dose_amount=payload.inventory.dose_amount,
                refill_threshold=payload.inventory.refill_threshold,
                unit=_normalize_optional(payload.inventory.unit),
                pharmacy_info=_normalize_optional(payload.inventory.pharmacy_info),
                total_refilled=0,
                refill_reminder_sent=False,
                updated_at=utcnow(),
            )
        )

    db.commit()
    return _medication_detail(db, medication)


@router.get("/{medication_id}", summary="Get a medication with its slots, streak and inventory")
def get_medication_detail(medication_id: str, db: Session = Depends(get_db)):
    return _medication_detail(db, get_medication(db, medication_id))


@router.delete("/{medication_id}", summary="Delete a medication and its history")
def delete_medication(medication_id: str, db: Session = Depends(get_db)):
    medication = get_medication(db, medication_id)
    mid = medication.medication_id

    with medication_locks.hold(mid):
        # SQLite does not enforce ON DELETE CASCADE by default; remove children explicitly.
        for model in (NotificationLog, RefillLog, DoseEvent, Streak, MedicationInventory, ScheduleSlot):
            db.execute(delete(model).where(model.medication_id == mid))
        db.delete(medication)
        db.commit()

    return {"ok": True, "deleted_medication_id": str(mid)}


@router.get("/{medication_id}/events", summary="Dose history for a medication")
def list_events(
    medication_id: str,
    action: str | None = Query(default=None),
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    medication = get_medication(db, medication_id)
    stmt = select(DoseEvent).where(DoseEvent.medication_id == medication.medication_id)
    if action:
        stmt = stmt.where(DoseEvent.action == action)
    stmt = stmt.order_by(desc(DoseEvent.recorded_at)).offset(offset).limit(limit)

    return [event_out(e) for e in db.execute(stmt).scalars().all()]
