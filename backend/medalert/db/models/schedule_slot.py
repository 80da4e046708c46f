"""Module: schedule_slot."""

import uuid
from datetime import datetime, time

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.db.base import Base

UPCOMING = "upcoming"
TAKEN = "taken"
SKIPPED = "skipped"
MISSED = "missed"

SLOT_STATUSES = (UPCOMING, TAKEN, SKIPPED, MISSED)


# One schedule entry of a medication: a time of day for specific-times schedules,
# or the single rolling slot of an interval schedule (scheduled_time is NULL).
class ScheduleSlot(Base):
    __tablename__ = "schedule_slots"

    slot_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    medication_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medications.medication_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Order the time was entered in; breaks ties between equal times.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scheduled_time: Mapped[time] = mapped_column(Time, nullable=True)

    status: Mapped[str] = mapped_column(String, nullable=False, default=UPCOMING)
    taken: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_taken_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    # Set on exactly one slot per medication: the next actionable reminder.
    next_reminder_at: Mapped[datetime] = mapped_column(DateTime, nullable=True, index=True)
    # The next_reminder_at value a reminder notice has already gone out for.
    reminded_for: Mapped[datetime] = mapped_column(DateTime, nullable=True)
