"""Utilidades de calendario: clave del dia, ventana de 7 dias y etiquetas."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from dateutil import tz

_LOCAL_TZ = tz.tzlocal()
_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WEEKDAY: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

TODAY_LABEL = "Today"


def local_today() -> date:
    """Return the current calendar date in the device's local timezone."""
    return datetime.now(tz=_LOCAL_TZ).date()


def local_date(timestamp_s: float) -> date:
    """Local calendar date of a Unix timestamp."""
    return datetime.fromtimestamp(timestamp_s, tz=_LOCAL_TZ).date()


def parse_key(key: str) -> date | None:
    """Parse a ``YYYY-MM-DD`` key; None if malformed or not a real date."""
    if not isinstance(key, str) or not _KEY_RE.match(key):
        return None
    try:
        return date.fromisoformat(key)
    except ValueError:
        return None


def today_key(today: date | None = None) -> str:
    """Key for today (or for ``today`` when given)."""
    return (today or local_today()).isoformat()


def last_7_keys(today: date | None = None) -> list[str]:
    """The 6 preceding days followed by today, oldest first."""
    anchor = today or local_today()
    return [(anchor - timedelta(days=i)).isoformat() for i in range(6, -1, -1)]


def window_before(anchor: date) -> list[str]:
    """The 6 days preceding ``anchor`` (anchor excluded), oldest first."""
    return [(anchor - timedelta(days=i)).isoformat() for i in range(6, 0, -1)]


def day_label(key: str, today: date | None = None) -> str:
    """Return "Today" for the current date, else a 3-letter weekday."""
    if key == today_key(today):
        return TODAY_LABEL
    parsed = parse_key(key)
    if parsed is None:
        return key
    return _WEEKDAY[parsed.weekday()]
