"""Timestamp parsing and normalization utilities."""

import re
from datetime import datetime, timedelta

# Common timestamp patterns
#
# Slash- and dash-separated day-first dates (e.g., "03/04/2025 14:30") are
# interpreted as DD/MM/YYYY, matching how the sample CSV exports are written.
# Dates without a time component are taken as midnight.
TIMESTAMP_PATTERNS = [
    # ISO with time (most common, try first)
    (r"^\d{4}-\d{1,2}-\d{1,2}[ T]\d{1,2}:\d{2}:\d{2}$", "%Y-%m-%d %H:%M:%S"),
    (r"^\d{4}-\d{1,2}-\d{1,2}[ T]\d{1,2}:\d{2}$", "%Y-%m-%d %H:%M"),
    (r"^\d{4}-\d{1,2}-\d{1,2}$", "%Y-%m-%d"),
    # Day-first formats
    (r"^\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}$", "%d/%m/%Y %H:%M"),
    (r"^\d{1,2}-\d{1,2}-\d{4}\s+\d{1,2}:\d{2}$", "%d-%m-%Y %H:%M"),
    (r"^\d{1,2}/\d{1,2}/\d{4}$", "%d/%m/%Y"),
    (r"^\d{1,2}-\d{1,2}-\d{4}$", "%d-%m-%Y"),
    # Text month formats
    (r"^\d{1,2}-\w{3}-\d{4}\s+\d{1,2}:\d{2}$", "%d-%b-%Y %H:%M"),
    (r"^\d{1,2}-\w{3}-\d{4}$", "%d-%b-%Y"),
]

# Compiled regex patterns for efficiency
COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in TIMESTAMP_PATTERNS]


def parse_timestamp(raw_timestamp: str) -> datetime:
    """Parse a raw timestamp string into a naive datetime.

    Handles:
    - ISO: 2025-12-28 14:30, 2025-12-28T14:30:00, 2025-12-28
    - Day-first: 28/12/2025 14:30, 28-12-2025 14:30, 28/12/2025
    - Text month: 28-Dec-2025 14:30

    Args:
        raw_timestamp: The raw timestamp string to parse.

    Returns:
        Parsed datetime (timezone information is dropped).

    Raises:
        ValueError: If the timestamp cannot be parsed.
    """
    if not raw_timestamp:
        raise ValueError("Empty timestamp string")

    ts_str = raw_timestamp.strip()
    if not ts_str:
        raise ValueError("Empty timestamp string after stripping whitespace")

    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(ts_str):
            try:
                return datetime.strptime(ts_str.replace("T", " "), fmt)
            except ValueError:
                # Pattern matched but values are out of range, try next
                continue

    # Fall back to full ISO 8601 (fractional seconds, offsets)
    try:
        parsed = datetime.fromisoformat(ts_str)
    except ValueError:
        raise ValueError(f"Cannot parse timestamp: '{raw_timestamp}'") from None

    return parsed.replace(tzinfo=None)


def timestamp_to_iso(ts: datetime) -> str:
    """Convert a datetime to ISO 8601 format.

    Args:
        ts: Datetime to convert.

    Returns:
        ISO format string.
    """
    return ts.isoformat()


def format_timestamp(ts: datetime, fmt: str = "%Y-%m-%d %H:%M") -> str:
    """Format a datetime for display.

    Args:
        ts: Datetime to format.
        fmt: Format string.

    Returns:
        Formatted timestamp string.
    """
    return ts.strftime(fmt)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of whole days from earlier to later, truncated toward zero."""
    delta = later - earlier
    days = abs(delta) // timedelta(days=1)
    return days if delta >= timedelta(0) else -days


def is_within_window(
    ts: datetime,
    reference: datetime,
    window: timedelta,
    include_reference: bool = False,
) -> bool:
    """Check whether ts falls in the trailing window ending at reference.

    The window start is always exclusive. The reference instant itself is
    included only when include_reference is True.

    Args:
        ts: Timestamp to test.
        reference: End of the window.
        window: Window length.
        include_reference: Whether ts == reference counts as inside.

    Returns:
        True if ts is inside the window.
    """
    if ts <= reference - window:
        return False
    if include_reference:
        return ts <= reference
    return ts < reference
