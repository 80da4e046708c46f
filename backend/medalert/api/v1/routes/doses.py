"""Module: doses."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from medalert.api.v1.routes.deps import get_transitions, parse_uuid
from medalert.api.v1.routes.medications import event_out, slot_out
from medalert.services.transitions import DoseTransitionService

router = APIRouter()


class TakePayload(BaseModel):
    taken_at: datetime | None = None
    quantity: float | None = None


class SkipPayload(BaseModel):
    reason: str | None = None


class DelayPayload(BaseModel):
    hours: float


# Each endpoint returns the recorded action; notification delivery happens in the background.

@router.post("/{slot_id}/take", summary="Mark a dose as taken")
def take_dose(
    slot_id: str,
    payload: TakePayload | None = None,
    transitions: DoseTransitionService = Depends(get_transitions),
):
    payload = payload or TakePayload()
    result = transitions.take(parse_uuid(slot_id, "slot_id"), payload.taken_at, payload.quantity)
    return {
        "event": event_out(result.event),
        "next_reminder": result.next_reminder,
        "inventory_status": result.inventory_status,
        "remaining_quantity": result.remaining_quantity,
    }


@router.post("/{slot_id}/skip", summary="Skip a dose")
def skip_dose(
    slot_id: str,
    payload: SkipPayload | None = None,
    transitions: DoseTransitionService = Depends(get_transitions),
):
    payload = payload or SkipPayload()
    result = transitions.skip(parse_uuid(slot_id, "slot_id"), reason=payload.reason)
    return {"event": event_out(result.event), "next_reminder": result.next_reminder}


@router.post("/{slot_id}/miss", summary="Record a missed dose")
def miss_dose(slot_id: str, transitions: DoseTransitionService = Depends(get_transitions)):
    event = transitions.miss(parse_uuid(slot_id, "slot_id"))
    return {"event": event_out(event)}


@router.post("/{slot_id}/delay", summary="Push a dose reminder back by some hours")
def delay_dose(
    slot_id: str,
    payload: DelayPayload,
    transitions: DoseTransitionService = Depends(get_transitions),
):
    result = transitions.delay(parse_uuid(slot_id, "slot_id"), payload.hours)
    return {"event": event_out(result.event), "new_reminder": result.new_reminder}


@router.post("/{slot_id}/reset", summary="Put a slot back to upcoming")
def reset_slot(slot_id: str, transitions: DoseTransitionService = Depends(get_transitions)):
    slot = transitions.reset(parse_uuid(slot_id, "slot_id"))
    return slot_out(slot)
