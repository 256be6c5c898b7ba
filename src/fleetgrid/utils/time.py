"""UTC timestamp helpers. Stored timestamps are ISO 8601 text."""

from datetime import date, datetime, timezone


def utc_now_iso() -> str:
    """
    Current UTC time as an ISO 8601 string with a 'Z' suffix.

    Example:
        >>> utc_now_iso()
        '2025-12-23T00:27:07.804867Z'
    """
    return to_utc_iso(datetime.now(timezone.utc))


def to_utc_iso(dt: datetime) -> str:
    """
    Convert an aware datetime to an ISO 8601 UTC string ending in 'Z'.

    Raises:
        ValueError: If the datetime is naive
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed. Got {dt}. "
            "Use datetime.now(timezone.utc) or dt.replace(tzinfo=timezone.utc)"
        )
    # fixed microsecond precision keeps stored values lexicographically ordered
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_iso_date(value: str) -> str:
    """Validate a YYYY-MM-DD string and return it normalized."""
    return date.fromisoformat(value.strip()).isoformat()
