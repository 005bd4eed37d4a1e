"""
Time utilities for the webhook pipeline.
The pipeline never reads the system clock directly; callers inject a Clock.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Digit-only strings of these lengths are compact dates (YYYYMMDD[HHMM[SS]]), not epoch seconds
_COMPACT_DATE_LENGTHS = (8, 12, 14)


def utc_now() -> datetime:
    """Default clock: current time in UTC."""
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with a Z suffix."""
    return _as_utc(dt).isoformat().replace("+00:00", "Z")


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return (_as_utc(dt) - _EPOCH) // timedelta(milliseconds=1)


def canonicalize_timestamp(value: Any) -> Optional[str]:
    """
    Convert a provider timestamp into canonical ISO-8601 UTC.

    Accepts:
    - ISO strings ("2024-01-01T12:00:00Z", "2024-01-01T17:30:00+05:30")
    - Loose date strings dateutil understands ("Jan 1 2024 12:00 PM")
    - Compact digit dates ("20240101", "20240101120000")
    - Unix epoch seconds (int/float, or any other numeric string)

    Naive values are treated as UTC. Unparseable strings come back unchanged
    so the caller still sees what the provider sent. None stays None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return to_iso_utc(datetime.fromtimestamp(value, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            logger.debug("Epoch timestamp out of range: %s", value)
            return str(value)

    text = str(value).strip()
    if not text:
        return None
    is_compact_date = text.isdigit() and len(text) in _COMPACT_DATE_LENGTHS
    if not is_compact_date and text.lstrip("-").replace(".", "", 1).isdigit():
        return canonicalize_timestamp(float(text))

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        logger.debug("Unparseable timestamp kept as-is: %s", text[:40])
        return text
    return to_iso_utc(parsed)
