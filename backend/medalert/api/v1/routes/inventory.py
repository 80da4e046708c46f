"""Module: inventory."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, get_transitions
from medalert.api.v1.routes.medications import get_medication, inventory_out
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.refill_log import RefillLog
from medalert.services.transitions import DoseTransitionService

router = APIRouter()

REFILL_SOURCES = {"pharmacy", "doctor", "mail", "other"}


class RefillPayload(BaseModel):
    quantity: float
    refill_source: str = "other"
    notes: str | None = None
    refilled_at: datetime | None = None


@router.get("/{medication_id}/inventory", summary="Current stock for a medication")
def get_inventory(medication_id: str, db: Session = Depends(get_db)):
    medication = get_medication(db, medication_id)
    inventory = db.execute(
        select(MedicationInventory).where(MedicationInventory.medication_id == medication.medication_id)
    ).scalar_one_or_none()
    if not inventory:
        raise HTTPException(status_code=404, detail="Inventory is not tracked for this medication")
    return inventory_out(inventory)


@router.post("/{medication_id}/refill", summary="Add stock to a medication")
def refill(
    medication_id: str,
    payload: RefillPayload,
    db: Session = Depends(get_db),
    transitions: DoseTransitionService = Depends(get_transitions),
):
    if payload.refill_source not in REFILL_SOURCES:
        raise HTTPException(status_code=400, detail=f"refill_source must be one of {sorted(REFILL_SOURCES)}")

    medication = get_medication(db, medication_id)
    result = transitions.refill(
        medication.medication_id,
        payload.quantity,
        refill_source=payload.refill_source,
        notes=payload.notes,
        refilled_at=payload.refilled_at,
    )
    return {
        "inventory": inventory_out(result.inventory),
        "threshold_restored": result.threshold_restored,
        "refill_id": str(result.log.refill_id),
        "previous_quantity": result.log.previous_quantity,
        "new_quantity": result.log.new_quantity,
    }


@router.get("/{medication_id}/refills", summary="Refill history for a medication")
def list_refills(medication_id: str, limit: int = 50, db: Session = Depends(get_db)):
    medication = get_medication(db, medication_id)
    rows = db.execute(
        select(RefillLog)
        .where(RefillLog.medication_id == medication.medication_id)
        .order_by(desc(RefillLog.refilled_at))
        .limit(limit)
    ).scalars().all()
    return [
        {
            "refill_id": str(r.refill_id),
            "quantity": r.quantity,
            "previous_quantity": r.previous_quantity,
            "new_quantity": r.new_quantity,
            "refill_source": r.refill_source,
            "notes": r.notes,
            "refilled_at": r.refilled_at,
        }
        for r in rows
    ]
