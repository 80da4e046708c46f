"""Module: notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, get_dispatcher
from medalert.api.v1.routes.medications import get_medication
from medalert.core.clock import utcnow
from medalert.core.config import settings
from medalert.db.models.notification_log import NotificationLog
from medalert.db.models.user import User
from medalert.services.notifications import (
    CHANNELS,
    REMINDER,
    DoseNotice,
    NotificationDispatcher,
    channels_for,
)

router = APIRouter()


class NotifyPayload(BaseModel):
    channels: list[str] | None = None
    message: str | None = None


@router.get("/{medication_id}/notifications", summary="Delivery history for a medication")
def list_notifications(
    medication_id: str,
    limit: int = 100,
    only_failed: bool = False,
    db: Session = Depends(get_db),
):
    medication = get_medication(db, medication_id)
    stmt = select(NotificationLog).where(NotificationLog.medication_id == medication.medication_id)
    if only_failed:
        stmt = stmt.where(NotificationLog.success.is_(False))
    rows = db.execute(stmt.order_by(desc(NotificationLog.dispatched_at)).limit(limit)).scalars().all()

    return [
        {
            "notification_id": str(n.notification_id),
            "event_id": str(n.event_id) if n.event_id else None,
            "kind": n.kind,
            "channel": n.channel,
            "success": n.success,
            "detail": n.detail,
            "meta": n.meta,
            "dispatched_at": n.dispatched_at,
        }
        for n in rows
    ]


@router.post("/{medication_id}/notify", summary="Send a reminder now (manual/demo trigger)")
def notify_now(
    medication_id: str,
    payload: NotifyPayload | None = None,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    payload = payload or NotifyPayload()
    medication = get_medication(db, medication_id)

    unknown = [c for c in payload.channels or [] if c not in CHANNELS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown channel(s): {', '.join(unknown)}")

    user = db.execute(select(User).where(User.user_id == medication.user_id)).scalar_one_or_none()
    channels = payload.channels or channels_for(
        user.notification_preferences if user else None, REMINDER, None, settings.default_channels
    )

    notice = DoseNotice(
        medication_id=medication.medication_id,
        user_id=medication.user_id,
        medication_name=medication.name,
        dosage=medication.dosage,
        kind=REMINDER,
        occurred_at=utcnow(),
        message=payload.message,
    )
    # Delivered inline so the caller sees the per-channel outcome.
    results = dispatcher.dispatch(medication.medication_id, notice, channels)
    return {
        "medication_id": str(medication.medication_id),
        "results": [
            {"channel": r.channel, "success": r.success, "detail": r.detail, "dispatched_at": r.dispatched_at}
            for r in results
        ],
    }
