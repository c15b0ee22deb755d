from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

DISPLAY_DATE_FORMAT = "%d/%m/%Y"

# Marker left on a phone's sale_date once its sale has been reversed
NO_DATE = "N/A"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_business_date(value) -> Optional[date]:
    """
    Parse a stored business date into a calendar date.

    Accepts DD/MM/YYYY (embedded store format), ISO dates and ISO datetimes
    (hosted store format) and date/datetime objects. Empty values, "N/A" and
    anything unparsable return None instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s or s.upper() == NO_DATE:
        return None

    if "/" in s:
        try:
            return datetime.strptime(s, DISPLAY_DATE_FORMAT).date()
        except ValueError:
            return None

    try:
        return parse_iso_datetime(s).date()
    except ValueError:
        return None


def format_display_date(value: date | datetime) -> str:
    return value.strftime(DISPLAY_DATE_FORMAT)


def today_display() -> str:
    """Today's date in DD/MM/YYYY form."""
    return format_display_date(utcnow())
