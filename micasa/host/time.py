"""Time and timestamp utilities.

Timestamps are stored as fixed-width UTC text (``YYYY-MM-DDTHH:MM:SS.ffffffZ``)
so that lexical order in SQL matches chronological order. Parsing is lenient
about what other writers produced: ``T`` or space separators, any number of
fractional digits, ``Z``, numeric offsets or no zone at all (read as UTC).
"""

import re
from datetime import date, datetime, timedelta, timezone

from ..exceptions import CorruptionError

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}(?::\d{2})?)(?:\.(\d+))?"
    r"\s*(Z|z|UTC|[+-]\d{2}(?::?\d{2})?)?$"
)


def now_utc() -> datetime:
    """Get current UTC time.

    Returns:
        datetime object with UTC timezone
    """
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC time in the storage format."""
    return format_timestamp(now_utc())


def format_timestamp(dt: datetime) -> str:
    """Format a datetime for storage.

    Args:
        dt: datetime object (naive datetimes treated as UTC)

    Returns:
        Fixed-width UTC timestamp string with 'Z' suffix
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def format_date(d: date | None) -> str | None:
    """Format a calendar date as YYYY-MM-DD, passing None through."""
    if d is None:
        return None
    return d.isoformat()


def parse_timestamp(raw: str, column: str = "timestamp") -> datetime:
    """Parse a stored timestamp into an aware UTC datetime.

    Args:
        raw: Stored text value
        column: Column name used in the error message

    Returns:
        datetime with UTC timezone

    Raises:
        CorruptionError: If the value is not a recognizable timestamp
    """
    text = raw.strip() if isinstance(raw, str) else ""
    match = _TIMESTAMP_RE.match(text)
    if match is None:
        raise CorruptionError(
            f"invalid {column} value {raw!r}",
            {"column": column, "value": raw},
        )

    day, clock, fraction, zone = match.groups()
    if len(clock) == 5:
        clock += ":00"
    try:
        parsed = datetime.strptime(f"{day} {clock}", "%Y-%m-%d %H:%M:%S")
    except ValueError as e:
        raise CorruptionError(
            f"invalid {column} value {raw!r}: {e}",
            {"column": column, "value": raw},
        ) from e

    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))

    return parsed.replace(tzinfo=_parse_zone(zone)).astimezone(timezone.utc)


def _parse_zone(zone: str | None) -> timezone:
    if zone is None or zone.upper() in ("Z", "UTC"):
        return timezone.utc
    sign = -1 if zone[0] == "-" else 1
    digits = zone[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4]) if len(digits) > 2 else 0
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_optional_timestamp(raw: str | None, column: str = "timestamp") -> datetime | None:
    if raw is None or raw == "":
        return None
    return parse_timestamp(raw, column)


def parse_date(raw: str, column: str = "date") -> date:
    """Parse a stored calendar date.

    Accepts plain ``YYYY-MM-DD`` values as well as full timestamps, whose UTC
    date is used.

    Raises:
        CorruptionError: If the value is neither a date nor a timestamp
    """
    text = raw.strip() if isinstance(raw, str) else ""
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError as e:
            raise CorruptionError(
                f"invalid {column} value {raw!r}",
                {"column": column, "value": raw},
            ) from e
    return parse_timestamp(text, column).date()


def parse_optional_date(raw: str | None, column: str = "date") -> date | None:
    if raw is None or raw == "":
        return None
    return parse_date(raw, column)
