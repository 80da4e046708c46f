"""Module: sweep."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, get_dispatcher
from medalert.services.notifications import NotificationDispatcher
from medalert.services.sweep import ReminderSweep

router = APIRouter()


class SweepPayload(BaseModel):
    # Pretend the sweep runs at this instant; defaults to now.
    now: datetime | None = None


# Endpoint: one pass of the reminder sweep, normally triggered by cron.
@router.post("/run", summary="Run the reminder sweep once")
def run_sweep(
    payload: SweepPayload | None = None,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    report = ReminderSweep(db, dispatcher).run(now=payload.now if payload else None)
    return report.as_dict()
