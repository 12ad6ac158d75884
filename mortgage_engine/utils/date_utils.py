"""Date manipulation utilities"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def compact_date(value: datetime) -> str:
    """YYYYMMDD stamp used in application numbers"""
    return value.strftime("%Y%m%d")
