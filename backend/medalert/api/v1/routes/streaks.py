"""Module: streaks."""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, parse_uuid
from medalert.api.v1.routes.medications import get_medication
from medalert.core.clock import utcnow
from medalert.db.adapters import streak_payload, streak_state
from medalert.db.models.dose_event import DoseEvent
from medalert.db.models.medication import Medication
from medalert.db.models.streak import Streak
from medalert.domain.streaks import adherence_summary, replay

router = APIRouter()


def _events(db: Session, medication_id, since=None) -> list[DoseEvent]:
    stmt = select(DoseEvent).where(DoseEvent.medication_id == medication_id)
    if since is not None:
        stmt = stmt.where(DoseEvent.recorded_at >= since)
    return list(db.execute(stmt.order_by(DoseEvent.recorded_at)).scalars().all())


@router.get("/medications/{medication_id}/streak", summary="Streak and adherence counters")
def get_streak(medication_id: str, verify: bool = False, db: Session = Depends(get_db)):
    medication = get_medication(db, medication_id)
    row = db.execute(select(Streak).where(Streak.medication_id == medication.medication_id)).scalar_one_or_none()
    stored = streak_state(row)
    out = streak_payload(medication.medication_id, stored)

    if verify:
        # Stored counters must match a replay of the event log.
        out["consistent"] = replay(_events(db, medication.medication_id)) == stored
    return out


@router.get("/medications/{medication_id}/adherence", summary="Adherence over a trailing window")
def get_adherence(
    medication_id: str,
    days: int = Query(default=7, ge=1, le=365),
    db: Session = Depends(get_db),
):
    medication = get_medication(db, medication_id)
    end = utcnow()
    start = end - timedelta(days=days)
    # recorded_at is the upper bound too, so nudge the end past events recorded this instant.
    summary = adherence_summary(_events(db, medication.medication_id, since=start), start, end + timedelta(seconds=1))
    return {"medication_id": str(medication.medication_id), "days": days, "start": start, "end": end, **summary}


@router.get("/streaks", summary="Streaks for every medication of a user")
def list_streaks(user_id: str = Query(...), db: Session = Depends(get_db)):
    uid = parse_uuid(user_id, "user_id")
    rows = db.execute(
        select(Medication, Streak)
        .outerjoin(Streak, Streak.medication_id == Medication.medication_id)
        .where(Medication.user_id == uid, Medication.active.is_(True))
        .order_by(Medication.created_at)
    ).all()

    out = []
    for medication, streak in rows:
        d = streak_payload(medication.medication_id, streak_state(streak))
        d["medication_name"] = medication.name
        out.append(d)
    return out
