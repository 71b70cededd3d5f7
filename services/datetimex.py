# services/datetimex.py
from __future__ import annotations
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TZ = "Asia/Kolkata"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_to_utc(s: str | None) -> datetime | None:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _as_aware(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_iso_to_utc(value)
    if isinstance(value, datetime):
        # naive timestamps from the db are UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return None


def dt_local(value, tz_name: str | None = None, fmt: str = "%d %b %Y, %I:%M %p") -> str:
    dt = _as_aware(value)
    if not dt:
        return ""
    return dt.astimezone(ZoneInfo(tz_name or DEFAULT_TZ)).strftime(fmt)
