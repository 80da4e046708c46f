"""Module: users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AnyHttpUrl, BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from medalert.api.v1.routes.deps import get_db, parse_uuid
from medalert.core.errors import UserNotFound
from medalert.db.models.user import User
from medalert.db.models.user_device import UserDevice
from medalert.services.notifications import CHANNELS

router = APIRouter()


class UserCreatePayload(BaseModel):
    email: str
    full_name: str
    phone: str | None = None
    push_token: str | None = None
    notification_preferences: dict | None = None


class PreferencesPayload(BaseModel):
    channels: list[str] | None = None
    confirm_taken: bool | None = None
    missed_dose: bool | None = None
    skipped_dose: bool | None = None
    delayed_dose: bool | None = None
    refill_alerts: bool | None = None
    reminders: bool | None = None
    push_token: str | None = None


class DevicePayload(BaseModel):
    device_id: str
    device_name: str | None = None
    device_type: str = "esp32"
    device_endpoint: AnyHttpUrl | None = None


# -------------------------
# Helpers
# -------------------------
def _validate_channels(channels: list[str] | None) -> None:
    unknown = [c for c in channels or [] if c not in CHANNELS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown channel(s): {', '.join(unknown)}")


def _get_user(db: Session, user_id: str) -> User:
    uid = parse_uuid(user_id, "user_id")
    user = db.execute(select(User).where(User.user_id == uid)).scalar_one_or_none()
    if not user:
        raise UserNotFound(f"User {uid} not found")
    return user


def _user_out(user: User) -> dict:
    return {
        "user_id": str(user.user_id),
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "has_push_token": bool(user.push_token),
        "notification_preferences": user.notification_preferences or {},
        "created_at": user.created_at,
    }


def _device_out(device: UserDevice) -> dict:
    return {
        "id": str(device.id),
        "device_id": device.device_id,
        "device_name": device.device_name,
        "device_type": device.device_type,
        "device_endpoint": device.device_endpoint,
        "is_active": device.is_active,
    }


# -------------------------
# Endpoints
# -------------------------

@router.post("", summary="Register a user")
def create_user(payload: UserCreatePayload, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=409, detail="Email already registered")

    preferences = payload.notification_preferences or {}
    _validate_channels(preferences.get("channels"))

    user = User(
        email=email,
        full_name=payload.full_name.strip(),
        phone=payload.phone,
        push_token=payload.push_token,
        notification_preferences=preferences,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_out(user)


@router.get("/{user_id}", summary="Get a user")
def get_user(user_id: str, db: Session = Depends(get_db)):
    return _user_out(_get_user(db, user_id))


@router.patch("/{user_id}/preferences", summary="Update notification preferences")
def update_preferences(user_id: str, payload: PreferencesPayload, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    changes = payload.model_dump(exclude_none=True)
    _validate_channels(changes.get("channels"))

    push_token = changes.pop("push_token", None)
    if push_token:
        user.push_token = push_token
    # Reassign so the JSON column is flagged dirty.
    user.notification_preferences = {**(user.notification_preferences or {}), **changes}

    db.commit()
    db.refresh(user)
    return _user_out(user)


@router.get("/{user_id}/devices", summary="List a user's reminder devices")
def list_devices(user_id: str, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    rows = db.execute(
        select(UserDevice).where(UserDevice.user_id == user.user_id).order_by(UserDevice.created_at)
    ).scalars().all()
    return [_device_out(d) for d in rows]


@router.post("/{user_id}/devices", summary="Register a reminder device")
def register_device(user_id: str, payload: DevicePayload, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    device = db.execute(
        select(UserDevice).where(UserDevice.user_id == user.user_id, UserDevice.device_id == payload.device_id)
    ).scalar_one_or_none()

    # Re-registering a known device updates it in place.
    if device is None:
        device = UserDevice(user_id=user.user_id, device_id=payload.device_id)
        db.add(device)
    device.device_name = payload.device_name
    device.device_type = payload.device_type
    device.device_endpoint = str(payload.device_endpoint).rstrip("/") if payload.device_endpoint else None
    device.is_active = True

    db.commit()
    db.refresh(device)
    return _device_out(device)


@router.delete("/{user_id}/devices/{device_id}", summary="Deactivate a reminder device")
def deactivate_device(user_id: str, device_id: str, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    device = db.execute(
        select(UserDevice).where(UserDevice.user_id == user.user_id, UserDevice.device_id == device_id)
    ).scalar_one_or_none()
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")

    device.is_active = False
    db.commit()
    return {"ok": True, "device_id": device_id}
