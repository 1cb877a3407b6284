"""Timestamp parsing and comparison for conflict resolution.

This module provides:
- parse_timestamp: Lenient ISO-8601 parsing (None when unparseable)
- compare_timestamps: Ordering where unparseable values are the oldest
- Clock / SystemClock / FixedClock: Injected source of "now"
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: Raw value read from a document.

    Returns:
        Parsed datetime, or None for missing, non-string or malformed values.
    """
    if not isinstance(value, str) or not value:
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # Out of range once shifted to UTC (e.g. year 1 with a positive offset)
        return None


def compare_timestamps(left: Any, right: Any) -> int:
    """Compare two raw timestamps.

    Missing or unparseable values count as older than any parseable one.

    Returns:
        1 if left is later, -1 if right is later, 0 on a tie
        (equal instants, or both unparseable).
    """
    left_value = parse_timestamp(left)
    right_value = parse_timestamp(right)

    if left_value is None and right_value is None:
        return 0
    if left_value is None:
        return -1
    if right_value is None:
        return 1
    if left_value == right_value:
        return 0
    return 1 if left_value > right_value else -1


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as a millisecond-precision UTC ISO string."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current time as an aware datetime."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant (tests, deterministic replays)."""

    def __init__(self, moment: datetime) -> None:
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance_to(self, moment: datetime) -> None:
        """Move the frozen instant."""
        self._moment = moment
