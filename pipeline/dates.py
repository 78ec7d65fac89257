"""
Date normalisation for spreadsheet cells.

Delivery dates arrive in several shapes depending on how the export was
produced:
  - spreadsheet serial numbers (days since 1899-12-30; serial 25569 is
    1970-01-01, i.e. (serial - 25569) * 86400 seconds since the Unix epoch)
  - datetime / date objects (openpyxl converts date-formatted cells)
  - "DD.MM.YYYY" strings (the ERP's Turkish locale)
  - anything else python-dateutil can read (ISO 8601, MM/DD/YYYY, ...)

Serials are converted in UTC so the calendar date never depends on the host
timezone.  Days-remaining snaps both dates to midnight and rounds the
difference; it never takes the ceiling.
"""
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

SERIAL_EPOCH_OFFSET = 25569         # serial number of 1970-01-01
SECONDS_PER_DAY = 86400
DISPLAY_FORMAT = "%d.%m.%Y"

_UNIX_EPOCH = datetime(1970, 1, 1)
_DISPLAY_PATTERN = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$")


def _is_blank(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    # Zero serials and empty strings mean "no date" in the exports
    return not value


def serial_to_date(serial: float) -> date:
    """Convert a spreadsheet serial number to a calendar date."""
    millis = round((serial - SERIAL_EPOCH_OFFSET) * SECONDS_PER_DAY * 1000)
    return (_UNIX_EPOCH + timedelta(milliseconds=millis)).date()


def _parse_string(text: str) -> Optional[date]:
    parts = text.split(".")
    if len(parts) == 3:
        try:
            return date(int(parts[2]), int(parts[1]), int(parts[0]))
        except ValueError:
            return None
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def parse_date(value: Any) -> Optional[date]:
    """
    Return the calendar date a cell represents, or None when the cell is
    blank or cannot be read as a date.
    """
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return serial_to_date(value)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        return _parse_string(text) if text else None
    return None


def format_date(value: date) -> str:
    return value.strftime(DISPLAY_FORMAT)


def format_display_date(value: Any) -> Optional[str]:
    """
    Render a cell as DD.MM.YYYY for display.

    Strings already in DD.MM.YYYY form are kept verbatim and strings that
    cannot be parsed are returned unchanged, so the operator still sees what
    the export contained.
    """
    if _is_blank(value):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _DISPLAY_PATTERN.match(text):
            return text
        try:
            return format_date(date_parser.parse(text).date())
        except (ValueError, OverflowError):
            return text
    parsed = parse_date(value)
    if parsed is not None:
        return format_date(parsed)
    return str(value)


def days_until(target: date, today: Optional[date] = None) -> int:
    """Signed whole days from today to target (negative = overdue)."""
    start = datetime.combine(today or date.today(), time.min)
    end = datetime.combine(target, time.min)
    return round((end - start).total_seconds() / SECONDS_PER_DAY)


def days_remaining(value: Any, today: Optional[date] = None) -> Optional[int]:
    """Days-remaining for a raw cell, or None if it holds no usable date."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return days_until(parsed, today)
