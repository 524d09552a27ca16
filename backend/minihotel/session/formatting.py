from __future__ import annotations

from datetime import date, datetime
from typing import Any

from minihotel.session.models import DisplaySettings

DATE_FIELDS = ("check_in", "check_out", "created_at")
DATETIME_FIELDS = frozenset({"created_at"})


def _coerce(value: date | datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))


def format_date(value: date | datetime | str, settings: DisplaySettings) -> str:
    moment = _coerce(value)
    day, month, year = f"{moment.day:02d}", f"{moment.month:02d}", moment.year
    if settings.date_format == "MM/DD/YYYY":
        return f"{month}/{day}/{year}"
    if settings.date_format == "YYYY-MM-DD":
        return f"{year}-{month}-{day}"
    return f"{day}/{month}/{year}"


def format_time(value: datetime | str, settings: DisplaySettings) -> str:
    moment = _coerce(value)
    if settings.time_format == "12h":
        hour = moment.hour % 12 or 12
        suffix = "AM" if moment.hour < 12 else "PM"
        return f"{hour}:{moment.minute:02d} {suffix}"
    return f"{moment.hour:02d}:{moment.minute:02d}"


def display_dates(record: dict[str, Any], settings: DisplaySettings) -> dict[str, str]:
    """``display_<field>`` values for the date fields of an upstream record.

    Missing or unparsable values are left out.
    """

    shown: dict[str, str] = {}
    for name in DATE_FIELDS:
        value = record.get(name)
        if not value:
            continue
        try:
            if name in DATETIME_FIELDS:
                shown[f"display_{name}"] = (
                    f"{format_date(value, settings)} {format_time(value, settings)}"
                )
            else:
                shown[f"display_{name}"] = format_date(value, settings)
        except (TypeError, ValueError):
            continue
    return shown


__all__ = ["display_dates", "format_date", "format_time"]
