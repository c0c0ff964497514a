# melbox/utils/datetime_utils.py
"""
Centralized date/time handling for the whole backend.

Goals of this module:
1. Every timestamp we write is a timezone-aware UTC datetime
2. Firestore reads/writes go through one conversion path
3. ISO-8601 formatting is done in one place (pagination cursors)
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """Centralized date/time helpers."""

    @staticmethod
    def now() -> datetime:
        """Current time as a UTC timezone-aware datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """Format a datetime as an ISO string with a 'Z' suffix."""
        try:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            else:
                dt = dt.astimezone(timezone.utc)
            return dt.isoformat().replace('+00:00', 'Z')
        except Exception as e:
            logger.error(f"Failed to format ISO string: {dt} - {e}")
            raise ValueError(f"Cannot convert to ISO string: {dt}")

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Convert date/time values before a Firestore write.

        Rules:
        - date -> datetime (00:00:00 UTC)
        - naive datetime -> UTC-aware datetime
        - dict/list are converted recursively
        """
        try:
            if isinstance(obj, date) and not isinstance(obj, datetime):
                return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)

            elif isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return obj.astimezone(timezone.utc)

            elif isinstance(obj, dict):
                return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}

            elif isinstance(obj, list):
                return [DateTimeUtils.for_firestore(item) for item in obj]

            else:
                return obj

        except Exception as e:
            logger.error(f"Firestore conversion failed: {obj} ({type(obj)}) - {e}")
            raise ValueError(f"Cannot convert to a Firestore-compatible value: {obj}")

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Normalize values read from Firestore.

        Rules:
        - Firestore timestamps / datetimes -> UTC-aware datetime
        - dict/list are converted recursively
        """
        try:
            if isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return obj.astimezone(timezone.utc)

            elif hasattr(obj, 'timestamp') and callable(obj.timestamp):
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)

            elif isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}

            elif isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item) for item in obj]

            else:
                return obj

        except Exception as e:
            logger.error(f"Firestore read conversion failed: {obj} ({type(obj)}) - {e}")
            # keep the raw value, the caller still gets something usable
            return obj
