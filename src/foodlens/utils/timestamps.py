"""Timestamp helpers for sync cursors and row versions."""

import re
from datetime import datetime, timezone

_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _normalize(text: str) -> str:
    # fromisoformat before 3.11 wants exactly 3 or 6 fractional digits
    def pad(match):
        return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"

    text = _FRACTION.sub(pad, text, count=1)
    return text.replace("Z", "+00:00")


def parse_iso(value) -> datetime | None:
    """Parse an ISO-8601 timestamp or date into an aware datetime.

    Accepts a trailing ``Z``, explicit offsets and date-only strings.
    Naive values are taken as UTC. Returns ``None`` for anything that
    does not parse.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(_normalize(str(value)))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_after(left, right) -> bool:
    """True when ``left`` is strictly later than ``right``.

    Unparseable values never compare as later.
    """
    a = parse_iso(left)
    b = parse_iso(right)
    if a is None or b is None:
        return False
    return a > b


def latest_timestamp(values, start=None):
    """Return the latest of ``values``, never earlier than ``start``.

    The original string is returned so cursors round-trip unchanged.
    """
    latest = start
    for value in values:
        if value is None or parse_iso(value) is None:
            continue
        if latest is None or is_after(value, latest):
            latest = value
    return latest


def format_since(value, now: datetime | None = None) -> str:
    """Human readable age of a timestamp ("5 minutes ago")."""
    if not value:
        return "Never"
    last = parse_iso(value)
    if last is None:
        return "Unknown"
    delta = (now or datetime.now(timezone.utc)) - last
    minutes = int(delta.total_seconds() / 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minutes ago"
    if minutes < 1440:
        return f"{minutes // 60} hours ago"
    return f"{minutes // 1440} days ago"
