"""Module: user."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from medalert.core.clock import utcnow
from medalert.db.base import Base


# Medication owner; carries the contact details and preferences notification channels read.
class User(Base):
    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    # E.164 formatted, used by the SMS channel.
    phone: Mapped[str] = mapped_column(String, nullable=True)
    # {"channels": [...], "confirm_taken": bool, "missed_dose": bool, ...}
    notification_preferences: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # Push token registered by the client app.
    push_token: Mapped[str] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow
    )
