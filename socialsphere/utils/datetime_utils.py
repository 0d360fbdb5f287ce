# socialsphere/utils/datetime_utils.py
"""
Central date/time helpers.

Everything the services store or compare is a timezone-aware UTC datetime.
Stored documents written by older web clients may carry JS epoch numbers,
ISO strings or serialized Firestore timestamps, so reads go through
`coerce_timestamp`.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any, Optional
from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from socialsphere.core.errors import TransientDateError

logger = logging.getLogger(__name__)

RECENTLY = "Recently"

# Epoch values above this are milliseconds (JS Date.getTime()).
_MS_EPOCH_THRESHOLD = 10 ** 11


class DateTimeUtils:
    """Date/time helpers shared across the project."""

    @staticmethod
    def now() -> datetime:
        """Current time as a UTC timezone-aware datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        Parse an ISO string into a UTC datetime.

        Accepted forms:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00 (assumed UTC)
        """
        try:
            if not iso_string:
                raise ValueError("cannot parse an empty string")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime parse failed: {iso_string} - {e}")
            raise ValueError(f"invalid ISO datetime: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime -> ISO string with a 'Z' suffix."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def coerce_timestamp(value: Any) -> datetime:
        """
        Convert a stored timestamp of any known shape into a UTC datetime.

        Raises:
            TransientDateError: the value is missing or cannot be interpreted.
        """
        if value is None or value == "":
            raise TransientDateError("timestamp is missing")

        # Firestore returns DatetimeWithNanoseconds, a datetime subclass.
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)

        if isinstance(value, date):
            return datetime.combine(value, time.min).replace(tzinfo=timezone.utc)

        if isinstance(value, bool):
            raise TransientDateError(f"not a timestamp: {value!r}")

        try:
            if isinstance(value, (int, float)):
                seconds = value / 1000.0 if abs(value) >= _MS_EPOCH_THRESHOLD else float(value)
                return datetime.fromtimestamp(seconds, tz=timezone.utc)

            if isinstance(value, str):
                return DateTimeUtils.parse_iso_datetime(value)

            # Serialized Firestore Timestamp, e.g. {"seconds": ..., "nanoseconds": ...}
            if isinstance(value, dict):
                seconds = value.get('seconds', value.get('_seconds'))
                nanos = value.get('nanoseconds', value.get('_nanoseconds', 0)) or 0
                if seconds is not None:
                    return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)

            if hasattr(value, 'timestamp'):
                return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            raise TransientDateError(f"unparsable timestamp {value!r}: {e}")

        raise TransientDateError(f"unsupported timestamp type: {type(value).__name__}")

    @staticmethod
    def coerce_or_now(value: Any, context: Optional[str] = None) -> datetime:
        """`coerce_timestamp`, substituting the current time when it fails."""
        try:
            return DateTimeUtils.coerce_timestamp(value)
        except TransientDateError as e:
            logger.warning(f"Substituting current time for bad timestamp ({context or 'unknown record'}): {e}")
            return DateTimeUtils.now()

    @staticmethod
    def time_ago(value: Any, reference: Optional[datetime] = None) -> str:
        """
        Relative, human readable age of a timestamp ("5 minutes ago").

        Returns "Recently" when the timestamp is missing or unparsable.
        """
        try:
            then = DateTimeUtils.coerce_timestamp(value)
        except TransientDateError:
            return RECENTLY

        reference = reference or DateTimeUtils.now()
        seconds = (reference - then).total_seconds()

        # Client clocks drift; a slightly future timestamp is "now".
        if seconds < 45:
            return "less than a minute ago"
        if seconds < 90:
            return "1 minute ago"
        minutes = round(seconds / 60)
        if minutes < 45:
            return f"{minutes} minutes ago"
        if minutes < 90:
            return "about 1 hour ago"
        hours = round(minutes / 60)
        if hours < 24:
            return f"about {hours} hours ago"
        if hours < 42:
            return "1 day ago"
        days = round(hours / 24)
        if days < 30:
            return f"{days} days ago"

        delta = relativedelta(reference, then)
        months = delta.years * 12 + delta.months
        if months < 1:
            return f"{days} days ago"
        if months == 1:
            return "about 1 month ago"
        if months < 12:
            return f"{months} months ago"
        if delta.years == 1:
            return "about 1 year ago"
        return f"about {delta.years} years ago"

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Prepare a value for a Firestore write.

        - date -> datetime (00:00:00 UTC)
        - naive datetime -> UTC aware datetime
        - dict/list converted recursively
        """
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
        return obj
