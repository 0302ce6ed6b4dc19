"""
Staleness policy for the cached configuration.

Everything here is pure: no I/O, no clock access unless `now` is omitted.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

# Go-style duration units, e.g. "1h30m", "90s", "500ms"
_DURATION_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|h|m|s)')


def parse_ttl(value: str) -> timedelta:
    """
    Parse a duration string such as "5m" or "1h30m".

    Raises:
        ValueError: If the string is empty or not a valid duration
        OverflowError: If the duration does not fit in a timedelta
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip()
    pos = 0
    total = timedelta()
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp. Naive values are treated as UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"invalid timestamp: {value!r}")
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_stale(last_checked: Optional[str], ttl: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Decide whether the cached configuration is due a refresh.

    Missing or malformed input is stale: we would rather refresh once too
    often than run on outdated versioning information.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    try:
        checked = parse_timestamp(last_checked)
        lifetime = parse_ttl(ttl)
        return now - checked > lifetime
    except (ValueError, TypeError, OverflowError):
        return True


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Format `now` (default: current time) as an RFC 3339 UTC timestamp."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
