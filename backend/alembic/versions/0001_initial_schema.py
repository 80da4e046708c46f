"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", UUID, primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("notification_preferences", sa.JSON(), nullable=False),
        sa.Column("push_token", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "user_devices",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("device_name", sa.String(), nullable=True),
        sa.Column("device_type", sa.String(), nullable=False),
        sa.Column("device_endpoint", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_user_devices_user_id", "user_devices", ["user_id"])
    op.create_table(
        "medications",
        sa.Column("medication_id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("dosage", sa.String(), nullable=True),
        sa.Column("instructions", sa.String(), nullable=True),
        sa.Column("medication_type", sa.String(), nullable=True),
        sa.Column("with_food", sa.Boolean(), nullable=False),
        sa.Column("frequency", sa.String(), nullable=False),
        sa.Column("frequency_value", sa.Float(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("last_action_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "schedule_slots",
        sa.Column("slot_id", UUID, primary_key=True),
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("taken", sa.Boolean(), nullable=False),
        sa.Column("last_taken_at", sa.DateTime(), nullable=True),
        sa.Column("next_reminder_at", sa.DateTime(), nullable=True),
        sa.Column("reminded_for", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_schedule_slots_medication_id", "schedule_slots", ["medication_id"])
    op.create_index("ix_schedule_slots_next_reminder_at", "schedule_slots", ["next_reminder_at"])
    op.create_table(
        "dose_events",
        sa.Column("event_id", UUID, primary_key=True),
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("slot_id", UUID, sa.ForeignKey("schedule_slots.slot_id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("taken_at", sa.DateTime(), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("delay_hours", sa.Float(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_dose_events_medication_id", "dose_events", ["medication_id"])
    op.create_table(
        "streaks",
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_taken_at", sa.DateTime(), nullable=True),
        sa.Column("taken_count", sa.Integer(), nullable=False),
        sa.Column("skipped_count", sa.Integer(), nullable=False),
        sa.Column("missed_count", sa.Integer(), nullable=False),
    )
    op.create_table(
        "medication_inventory",
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("current_quantity", sa.Float(), nullable=False),
        sa.Column("dose_amount", sa.Float(), nullable=False),
        sa.Column("refill_threshold", sa.Float(), nullable=True),
        sa.Column("unit", sa.String(), nullable=True),
        sa.Column("pharmacy_info", sa.String(), nullable=True),
        sa.Column("last_refill_date", sa.DateTime(), nullable=True),
        sa.Column("total_refilled", sa.Float(), nullable=False),
        sa.Column("refill_reminder_sent", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "refill_logs",
        sa.Column("refill_id", UUID, primary_key=True),
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("previous_quantity", sa.Float(), nullable=False),
        sa.Column("new_quantity", sa.Float(), nullable=False),
        sa.Column("refill_source", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("refilled_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_refill_logs_medication_id", "refill_logs", ["medication_id"])
    op.create_table(
        "notification_logs",
        sa.Column("notification_id", UUID, primary_key=True),
        sa.Column(
            "medication_id", UUID, sa.ForeignKey("medications.medication_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("event_id", UUID, nullable=True),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("detail", sa.String(), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notification_logs_medication_id", "notification_logs", ["medication_id"])


def downgrade() -> None:
    for table in (
        "notification_logs",
        "refill_logs",
        "medication_inventory",
        "streaks",
        "dose_events",
        "schedule_slots",
        "medications",
        "user_devices",
        "users",
    ):
        op.drop_table(table)
