# Rev 0.1.0
"""Row <-> value helpers shared by the SQLite repositories."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional


def to_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def date_str(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return to_date(value).isoformat()


def to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace(" ", "T"))
