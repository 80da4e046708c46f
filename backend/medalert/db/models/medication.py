"""Module: medication."""

import uuid
from datetime import date, datetime
from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.core.clock import utcnow
from medalert.db.base import Base


# A medication a user takes on a schedule, described by a frequency tag.
class Medication(Base):
    __tablename__ = "medications"

    medication_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    dosage: Mapped[str] = mapped_column(String, nullable=True)
    instructions: Mapped[str] = mapped_column(String, nullable=True)
    medication_type: Mapped[str] = mapped_column(String, nullable=True)
    with_food: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # One of the frequency tags; frequency_value holds the hours for every_x_hours.
    frequency: Mapped[str] = mapped_column(String, nullable=False)
    frequency_value: Mapped[float] = mapped_column(Float, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Touched by every dose transition so the version check below covers the whole schedule.
    last_action_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __mapper_args__ = {"version_id_col": version}
