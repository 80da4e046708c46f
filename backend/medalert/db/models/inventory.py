"""Module: inventory."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.core.clock import utcnow
from medalert.db.base import Base


# Optional stock tracking for a medication; decremented on take, incremented on refill.
class MedicationInventory(Base):
    __tablename__ = "medication_inventory"

    medication_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medications.medication_id", ondelete="CASCADE"),
        primary_key=True,
    )

    current_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dose_amount: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    refill_threshold: Mapped[float] = mapped_column(Float, nullable=True)
    unit: Mapped[str] = mapped_column(String, nullable=True)
    pharmacy_info: Mapped[str] = mapped_column(String, nullable=True)

    last_refill_date: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    total_refilled: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    refill_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
