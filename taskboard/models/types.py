from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes stored as plain UTC timestamps.

    SQLite has no timezone support, so values go in without tzinfo and come
    back out with UTC attached. Naive input is taken to be UTC already.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = to_aware_utc(value)
        if value is None:
            return None
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        return to_aware_utc(value)
