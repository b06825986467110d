"""
Time helpers shared by models and services
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time (microsecond precision)"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values (SQLite) are read as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
