"""
Raw spreadsheet rows -> domain records.

map_order_rows() turns the order sheet into OrderLine records:
  1. Resolve the header row and column positions (header_resolver)
  2. Read every mapped cell, defaulting to "" / 0 when a column is missing
  3. Days-remaining: a parsed delivery date wins over the sheet's literal
     "KALAN GÜN" column; the literal is only used when the date is unreadable
  4. Supplier name fallback chain (name -> name-like code -> "Tedarikçi (code)")
  5. Drop footer / summary / broken rows (blank order number, unknown supplier)

map_contact_rows() does the same for the optional supplier contact sheet.
"""
import logging
import math
import re
from datetime import date
from typing import Any, Optional, Sequence

from models.order_line import OrderLine
from models.supplier import SupplierContact
from .classifier import classify
from .dates import days_remaining, format_display_date
from .header_resolver import (
    CONTACT_ANCHORS,
    CONTACT_FIELD_ALIASES,
    CONTACT_SCAN_ROWS,
    HeaderMatch,
    ORDER_ANCHORS,
    ORDER_FIELD_ALIASES,
    resolve_header,
)

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "ADT"
SUPPLIER_LABEL = "Tedarikçi ({code})"
# Rows resolving to this name are discarded.  A real supplier literally named
# "Bilinmeyen Tedarikçi" would be dropped too.
UNKNOWN_SUPPLIER = "Bilinmeyen Tedarikçi"

_INT_PREFIX = re.compile(r"^\s*([-+]?\d+)")


# ------------------------------------------------------------------
# Cell helpers
# ------------------------------------------------------------------

def _cell(row: Sequence[Any], idx: Optional[int]) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _to_str(value: Any) -> str:
    """Cell as trimmed text; blank cells and zeros become ""."""
    if value is None or isinstance(value, bool) or not value:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    text = str(value).strip()
    if "," in text:
        # Turkish thousands/decimal separators: 1.234,50
        text = text.replace(".", "").replace(",", ".")
    cleaned = re.sub(r"[^\d.\-]", "", text)
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _to_int(value: Any) -> Optional[int]:
    """Leading integer of a cell, or None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    match = _INT_PREFIX.match(str(value))
    return int(match.group(1)) if match else None


def _is_numeric(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _is_empty_row(row: Optional[Sequence[Any]]) -> bool:
    return not row or all(cell is None or cell == "" for cell in row)


# ------------------------------------------------------------------
# Order lines
# ------------------------------------------------------------------

def resolve_supplier_name(name: str, code: str) -> str:
    """Explicit name, else a name-like code, else a synthesised label."""
    if name:
        return name
    if code and len(code) > 5 and not _is_numeric(code):
        return code
    if code:
        return SUPPLIER_LABEL.format(code=code)
    return UNKNOWN_SUPPLIER


def _resolve_days(raw_date: Any, raw_days: Any, today: Optional[date]) -> int:
    literal = _to_int(raw_days)
    if raw_date is not None and raw_date != "":
        computed = days_remaining(raw_date, today)
        if computed is not None:
            return computed
        if literal is None:
            logger.warning("Unreadable delivery date %r and no days column value", raw_date)
            return 0
        logger.debug("Unreadable delivery date %r — using sheet value %d", raw_date, literal)
    return literal if literal is not None else 0


def map_order_row(
    row: Sequence[Any],
    header: HeaderMatch,
    threshold: int,
    today: Optional[date] = None,
) -> Optional[OrderLine]:
    """Map one row; returns None for rows that are not real order lines."""
    def get(name: str) -> Any:
        return _cell(row, header.column(name))

    po_number = _to_str(get("po_number"))
    supplier_code = _to_str(get("supplier_code"))
    supplier_name = resolve_supplier_name(_to_str(get("supplier_name")), supplier_code)

    if not po_number or po_number == "undefined" or supplier_name == UNKNOWN_SUPPLIER:
        return None

    raw_promised = get("promised_date")
    raw_revised = get("revised_date")
    effective_raw = raw_revised if _to_str(raw_revised) else raw_promised
    days = _resolve_days(effective_raw, get("days_remaining"), today)

    return OrderLine(
        po_number=po_number,
        item_number=_to_str(get("item_number")),
        supplier_code=supplier_code,
        supplier_name=supplier_name,
        material=_to_str(get("material")),
        description=_to_str(get("description")),
        ordered_qty=_to_float(get("ordered_qty")),
        open_qty=_to_float(get("open_qty")),
        unit=_to_str(get("unit")) or DEFAULT_UNIT,
        promised_date=format_display_date(raw_promised) or "",
        revised_date=format_display_date(raw_revised) or "",
        first_promised_date=format_display_date(get("first_promised_date")) or "",
        requester=_to_str(get("requester")),
        creator=_to_str(get("creator")),
        note=_to_str(get("note")),
        days_remaining=days,
        risk=classify(days, threshold),
    )


def map_order_rows(
    grid: Sequence[Sequence[Any]],
    threshold: int,
    today: Optional[date] = None,
) -> list[OrderLine]:
    """Map the order sheet grid to OrderLine records (empty grid -> [])."""
    if not grid:
        return []

    header = resolve_header(grid, ORDER_ANCHORS, ORDER_FIELD_ALIASES)
    if header.column("po_number") is None:
        logger.warning("Order number column not found in header row %d", header.row_index)

    lines: list[OrderLine] = []
    dropped = 0
    for row in grid[header.row_index + 1:]:
        if _is_empty_row(row):
            continue
        line = map_order_row(row, header, threshold, today)
        if line is None:
            dropped += 1
            continue
        lines.append(line)

    logger.info("Mapped %d order lines (%d rows dropped)", len(lines), dropped)
    return lines


# ------------------------------------------------------------------
# Supplier contacts
# ------------------------------------------------------------------

def _clean_phone(value: Any) -> str:
    return re.sub(r"[\r\n]+", " ", _to_str(value))


def map_contact_rows(grid: Optional[Sequence[Sequence[Any]]]) -> list[SupplierContact]:
    """Map the supplier contact sheet; a missing sheet yields no contacts."""
    if not grid:
        return []

    header = resolve_header(
        grid, CONTACT_ANCHORS, CONTACT_FIELD_ALIASES, scan_rows=CONTACT_SCAN_ROWS,
    )
    contacts: list[SupplierContact] = []
    for row in grid[header.row_index + 1:]:
        if _is_empty_row(row):
            continue
        values = {
            name: _to_str(_cell(row, header.column(name)))
            for name in CONTACT_FIELD_ALIASES
        }
        if not values["code"]:
            continue
        values["rep_phone"] = _clean_phone(_cell(row, header.column("rep_phone")))
        contacts.append(SupplierContact(**values))

    logger.info("Mapped %d supplier contacts", len(contacts))
    return contacts
