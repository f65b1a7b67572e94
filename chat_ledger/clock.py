"""
Clock helpers.

Timestamps are stored as naive UTC. Ledger dates ("today",
"this week") are local dates in the configured timezone.
Services accept a clock callable so tests can move time.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from chat_ledger.config import get_settings


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_now() -> datetime:
    """Return the current wall-clock time in the ledger timezone."""
    tz = ZoneInfo(get_settings().TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)
