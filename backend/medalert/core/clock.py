"""Module: clock."""

from datetime import UTC, datetime


# Timestamps are stored as naive UTC, matching the DateTime columns.
def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
