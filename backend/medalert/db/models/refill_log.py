"""Module: refill_log."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.core.clock import utcnow
from medalert.db.base import Base


class RefillLog(Base):
    __tablename__ = "refill_logs"

    refill_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    medication_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medications.medication_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    previous_quantity: Mapped[float] = mapped_column(Float, nullable=False)
    new_quantity: Mapped[float] = mapped_column(Float, nullable=False)
    # pharmacy / doctor / mail / other
    refill_source: Mapped[str] = mapped_column(String, nullable=False, default="other")
    notes: Mapped[str] = mapped_column(String, nullable=True)

    refilled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
