"""
Spreadsheet file -> raw cell grids.

This is the I/O boundary of the pipeline.  Everything downstream works on
plain lists of rows; a file that cannot be read yields empty grids (logged),
never an exception, and the caller decides whether "no data" is an error.

Supported inputs:
  .xlsx / .xlsm  first sheet = open orders; the supplier contact sheet is the
                 first sheet whose name contains "tedarikci" and "list"
                 (falling back to just "tedarikci")
  .csv           order sheet only (no contact sheet)
"""
import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .header_resolver import normalize_header

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}

Grid = list[list[Any]]


@dataclass
class WorkbookGrids:
    orders: Grid = field(default_factory=list)
    contacts: Optional[Grid] = None     # None when the workbook has no contact sheet
    source_file: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.orders


def find_contact_sheet(sheet_names: list[str]) -> Optional[str]:
    normalized = [(name, normalize_header(name)) for name in sheet_names]
    for name, norm in normalized:
        if "tedarikci" in norm and "list" in norm:
            return name
    for name, norm in normalized:
        if "tedarikci" in norm:
            return name
    return None


def _sheet_grid(sheet) -> Grid:
    return [list(row) for row in sheet.iter_rows(values_only=True)]


def _load_excel(path: Path) -> WorkbookGrids:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        names = workbook.sheetnames
        if not names:
            return WorkbookGrids(source_file=str(path))
        orders = _sheet_grid(workbook[names[0]])
        contact_sheet = find_contact_sheet(names[1:])
        contacts = _sheet_grid(workbook[contact_sheet]) if contact_sheet else None
    finally:
        workbook.close()
    if contact_sheet:
        logger.debug("Supplier contact sheet: %s", contact_sheet)
    return WorkbookGrids(orders=orders, contacts=contacts, source_file=str(path))


def _load_csv(path: Path) -> WorkbookGrids:
    # utf-8-sig strips the BOM that spreadsheet programs add on export
    with open(path, newline="", encoding="utf-8-sig") as f:
        sample = f.read(4096)
        f.seek(0)
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
        except csv.Error:
            dialect = csv.excel
        rows: Grid = [[cell if cell != "" else None for cell in row] for row in csv.reader(f, dialect)]
    return WorkbookGrids(orders=rows, source_file=str(path))


def load_grids(path: str | Path) -> WorkbookGrids:
    """Read a spreadsheet export into raw grids; unreadable files give empty grids."""
    path = Path(path)
    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            grids = _load_excel(path)
        elif path.suffix.lower() == ".csv":
            grids = _load_csv(path)
        else:
            logger.error("Unsupported spreadsheet type: %s", path.name)
            return WorkbookGrids(source_file=str(path))
    except (OSError, BadZipFile, InvalidFileException, KeyError, UnicodeDecodeError, csv.Error) as exc:
        logger.error("Could not read %s: %s", path.name, exc)
        return WorkbookGrids(source_file=str(path))

    logger.info(
        "Read %s: %d order rows, contact sheet %s",
        path.name, len(grids.orders), "present" if grids.contacts is not None else "absent",
    )
    return grids
