"""Module: dose_event."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.core.clock import utcnow
from medalert.db.base import Base


# Append-only dose history; rows are never updated or deleted after insert.
class DoseEvent(Base):
    __tablename__ = "dose_events"

    event_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    medication_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medications.medication_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slot_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schedule_slots.slot_id", ondelete="SET NULL"),
        nullable=True,
    )

    # taken / missed / skipped / delayed
    action: Mapped[str] = mapped_column(String, nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    taken_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=True)
    reason: Mapped[str] = mapped_column(String, nullable=True)
    delay_hours: Mapped[float] = mapped_column(Float, nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
