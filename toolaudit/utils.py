"""
Utility functions
"""
from datetime import datetime


def bucket_of(seconds: int, width: int) -> int:
    """
    Index of the fixed-width interval containing a timestamp

    Args:
        seconds: Epoch seconds
        width: Interval width in seconds

    Returns:
        floor(seconds / width)

    Example:
        >>> bucket_of(1200, 600)
        2
        >>> bucket_of(1199, 600)
        1
    """
    return seconds // width


def bucket_of_millis(millis: int, width: int) -> int:
    """Same as bucket_of, for an epoch-milliseconds timestamp"""
    return millis // (width * 1000)


def parse_iso_millis(value: str) -> int:
    """
    Parse an ISO-8601 timestamp with offset into epoch milliseconds

    Example:
        >>> parse_iso_millis("1970-01-01T06:00:01.500+06:00")
        1500

    Raises:
        ValueError: If the string is not a timestamp or carries no offset
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp without offset: {value}")
    return int(round(parsed.timestamp() * 1000))


def team_id_sort_key(team_id: str) -> str:
    """Sort key that orders short numeric ids naturally ("7" before "12")"""
    return team_id.rjust(3, '0')
