"""UTC time helpers shared by expiry checks."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Return ``value`` as an aware UTC datetime.

    SQLite hands DateTime(timezone=True) columns back naive; every value this
    application writes is UTC, so a naive value is read as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
