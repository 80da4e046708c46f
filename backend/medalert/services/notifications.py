"""Module: notifications.

Fan-out of dose, reminder and low-supply notices to the user's channels.
Each channel posts JSON to the notification gateway (or straight to an
ESP32 device). Failures are logged and recorded per channel; they never
reach the caller of a dose transition.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medalert.core.clock import utcnow
from medalert.core.errors import DispatchFailure
from medalert.db.models.notification_log import NotificationLog
from medalert.db.models.user import User
from medalert.db.models.user_device import UserDevice

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"
PUSH = "push"
DEVICE = "device"

CHANNELS = (EMAIL, SMS, PUSH, DEVICE)

DOSE = "dose"
REMINDER = "reminder"
LOW_SUPPLY = "low_supply"

# Preference toggle consulted for each notice kind / dose action; missing toggles default to on.
PREFERENCE_TOGGLES = {
    "taken": "confirm_taken",
    "missed": "missed_dose",
    "skipped": "skipped_dose",
    "delayed": "delayed_dose",
    LOW_SUPPLY: "refill_alerts",
    REMINDER: "reminders",
}


@dataclass(frozen=True)
class DoseNotice:
    medication_id: uuid.UUID
    user_id: uuid.UUID
    medication_name: str
    dosage: str | None
    kind: str
    action: str | None = None
    event_id: uuid.UUID | None = None
    occurred_at: datetime = field(default_factory=utcnow)
    next_reminder_at: datetime | None = None
    inventory_status: str | None = None
    remaining_quantity: float | None = None
    message: str | None = None


@dataclass(frozen=True)
class ChannelResult:
    channel: str
    success: bool
    detail: str | None = None
    dispatched_at: datetime = field(default_factory=utcnow)


@dataclass
class Recipient:
    user_id: uuid.UUID
    email: str | None
    phone: str | None
    push_token: str | None
    devices: list[UserDevice]


def channels_for(preferences: dict | None, kind: str, action: str | None, default_channels: Iterable[str]) -> list[str]:
    prefs = preferences or {}
    toggle = PREFERENCE_TOGGLES.get(action if kind == DOSE else kind)
    if toggle and prefs.get(toggle) is False:
        return []

    chosen = prefs.get("channels") or list(default_channels)
    # Keep the user's order, drop duplicates.
    return list(dict.fromkeys(c for c in chosen if c))


def build_message(notice: DoseNotice) -> tuple[str, str]:
    name = notice.medication_name
    dosage = f" ({notice.dosage})" if notice.dosage else ""

    if notice.message:
        return f"MedAlert: {name}", notice.message

    if notice.kind == REMINDER:
        return f"Time to take {name}", f"It's time to take {name}{dosage}."

    if notice.kind == LOW_SUPPLY:
        if notice.inventory_status == "depleted":
            return f"{name} has run out", f"You have no {name} left. Please refill your prescription."
        remaining = "" if notice.remaining_quantity is None else f" Only {notice.remaining_quantity:g} left."
        return f"{name} is running low", f"Your supply of {name} is running low.{remaining} Time to refill."

    subjects = {
        "taken": f"{name} marked as taken",
        "skipped": f"{name} skipped",
        "missed": f"Missed dose of {name}",
        "delayed": f"{name} reminder delayed",
    }
    subject = subjects.get(notice.action or "", f"{name} update")
    body = f"{subject}{dosage}."
    if notice.next_reminder_at:
        body += f" Next reminder: {notice.next_reminder_at.isoformat(timespec='minutes')} UTC."
    return subject, body


def _payload(notice: DoseNotice) -> dict:
    subject, body = build_message(notice)
    return {
        "medication_id": str(notice.medication_id),
        "event_id": str(notice.event_id) if notice.event_id else None,
        "kind": notice.kind,
        "action": notice.action,
        "subject": subject,
        "message": body,
        "inventory_status": notice.inventory_status,
        "occurred_at": notice.occurred_at.isoformat(),
    }


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        gateway_url: str,
        timeout: float = 5.0,
        workers: int = 4,
        client: httpx.Client | None = None,
    ):
        self.session_factory = session_factory
        self.gateway_url = gateway_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="medalert-dispatch")
        self._senders = {
            EMAIL: self._send_email,
            SMS: self._send_sms,
            PUSH: self._send_push,
            DEVICE: self._send_device,
        }

    # -------------------------
    # Boundary
    # -------------------------
    def submit(self, notice: DoseNotice, channels: Iterable[str]) -> Future:
        """Queue delivery and return immediately."""
        future = self._executor.submit(self.dispatch, notice.medication_id, notice, list(channels))
        future.add_done_callback(self._log_crash)
        return future

    def dispatch(self, medication_id: uuid.UUID, notice: DoseNotice, channels: Iterable[str]) -> list[ChannelResult]:
        with self.session_factory() as db:
            recipient = self._load_recipient(db, notice.user_id)

            results: list[ChannelResult] = []
            for channel in dict.fromkeys(channels):
                results.append(self._deliver(channel, recipient, notice))

            self._record(db, medication_id, notice, results)

        failed = [r.channel for r in results if not r.success]
        if failed:
            logger.warning(
                "Notice %s for medication %s partially delivered; failed channels: %s",
                notice.kind, medication_id, ", ".join(failed),
            )
        return results

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self.client.close()

    # -------------------------
    # Helpers
    # -------------------------
    def _deliver(self, channel: str, recipient: Recipient | None, notice: DoseNotice) -> ChannelResult:
        sender = self._senders.get(channel)
        try:
            if sender is None:
                raise DispatchFailure(channel, "unsupported channel")
            if recipient is None:
                raise DispatchFailure(channel, "user not found")
            detail = sender(recipient, notice)
            return ChannelResult(channel=channel, success=True, detail=detail)
        except DispatchFailure as exc:
            logger.warning("Dispatch failed on %s: %s", channel, exc.detail)
            return ChannelResult(channel=channel, success=False, detail=exc.detail)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Dispatch failed on %s: %s", channel, exc)
            return ChannelResult(channel=channel, success=False, detail=f"{channel}: {exc}")

    def _log_crash(self, future: Future) -> None:
        # Nobody waits on a submitted future; surface anything it swallowed.
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background notification dispatch failed", exc_info=exc)

    def _load_recipient(self, db: Session, user_id: uuid.UUID) -> Recipient | None:
        user = db.execute(select(User).where(User.user_id == user_id)).scalar_one_or_none()
        if not user:
            return None
        devices = db.execute(
            select(UserDevice).where(UserDevice.user_id == user_id, UserDevice.is_active.is_(True))
        ).scalars().all()
        return Recipient(
            user_id=user.user_id,
            email=user.email,
            phone=user.phone,
            push_token=user.push_token,
            devices=list(devices),
        )

    def _record(self, db: Session, medication_id: uuid.UUID, notice: DoseNotice, results: list[ChannelResult]) -> None:
        db.add_all(
            NotificationLog(
                medication_id=medication_id,
                event_id=notice.event_id,
                kind=notice.kind,
                channel=r.channel,
                success=r.success,
                detail=r.detail,
                meta={"action": notice.action, "inventory_status": notice.inventory_status},
                dispatched_at=r.dispatched_at,
            )
            for r in results
        )
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not record notification results for medication %s", medication_id)

    def _post(self, url: str, body: dict) -> httpx.Response:
        r = self.client.post(url, json=body)
        r.raise_for_status()
        return r

    def _send_email(self, recipient: Recipient, notice: DoseNotice) -> str:
        if not recipient.email:
            raise DispatchFailure(EMAIL, "no email address on file")
        self._post(f"{self.gateway_url}/email", {"to": recipient.email, **_payload(notice)})
        return f"sent to {recipient.email}"

    def _send_sms(self, recipient: Recipient, notice: DoseNotice) -> str:
        if not recipient.phone:
            raise DispatchFailure(SMS, "no phone number on file")
        self._post(f"{self.gateway_url}/sms", {"to": recipient.phone, **_payload(notice)})
        return f"sent to {recipient.phone}"

    def _send_push(self, recipient: Recipient, notice: DoseNotice) -> str:
        if not recipient.push_token:
            raise DispatchFailure(PUSH, "no push token registered")
        self._post(f"{self.gateway_url}/push", {"token": recipient.push_token, **_payload(notice)})
        return "push queued"

    def _send_device(self, recipient: Recipient, notice: DoseNotice) -> str:
        if not recipient.devices:
            raise DispatchFailure(DEVICE, "no active device registered")

        body = _payload(notice)
        failures = []
        for device in recipient.devices:
            try:
                if device.device_endpoint:
                    self._post(f"{device.device_endpoint.rstrip('/')}/notify", body)
                else:
                    self._post(
                        f"{self.gateway_url}/device/publish",
                        {"topic": f"medalert/{device.device_id}", "device_id": device.device_id, "payload": body},
                    )
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                failures.append(f"{device.device_id}: {exc}")

        if failures:
            raise DispatchFailure(DEVICE, "; ".join(failures))
        return f"delivered to {len(recipient.devices)} device(s)"
