"""Duration parsing for free-text prep/cook times."""

import re
from typing import Any, Optional

# A quantity that is not part of a fractional or negative number.
# "10-15" is a range: only a hyphen at the start or after whitespace is a minus.
_QUANTITY = r"(?<![\d.])(?<!^-)(?<!\s-)(\d+)(?!\.\d)"

_HOUR_RE = re.compile(_QUANTITY + r"\s*(?:hour|hr|h)s?")
_MINUTE_RE = re.compile(_QUANTITY + r"\s*(?:minute|min|m)s?")
_NUMBER_RE = re.compile(r"(\d+)")


def parse_time_to_seconds(value: Any) -> Optional[int]:
    """
    Convert a time string to seconds.

    Handles formats like "15 minutes", "1 hour", "30 mins", "2 hrs",
    "2 hours 15 minutes" and bare numbers ("45" is read as minutes).

    Returns:
        Total seconds, or None when nothing numeric is found or the total is 0
    """
    if not value or not isinstance(value, str):
        return None

    normalized = value.lower().strip()
    total_seconds = 0

    hour_match = _HOUR_RE.search(normalized)
    if hour_match:
        total_seconds += int(hour_match.group(1)) * 3600

    minute_match = _MINUTE_RE.search(normalized)
    if minute_match:
        total_seconds += int(minute_match.group(1)) * 60

    # No unit matched - fall back to the first number, assumed minutes
    if total_seconds == 0:
        number_match = _NUMBER_RE.search(normalized)
        if number_match:
            total_seconds = int(number_match.group(1)) * 60

    return total_seconds if total_seconds > 0 else None


def format_duration(seconds: Optional[int]) -> Optional[str]:
    """Render seconds as "1 hour 15 minutes" style text, or None."""
    if not seconds:
        return None

    hours, remainder = divmod(int(seconds), 3600)
    minutes = remainder // 60

    parts = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    return " ".join(parts) or None
