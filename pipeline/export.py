"""
Flat CSV export of order lines and comparison reports.

Every column is a primitive (text or number) so the files open cleanly in a
spreadsheet program and can be loaded back with workbook_loader.
"""
import csv
import logging
from pathlib import Path
from typing import Iterable

from models.order_line import OrderLine
from models.result import ComparisonReport

logger = logging.getLogger(__name__)

ORDER_LINE_FIELDS: list[str] = list(OrderLine.model_fields)

# Column captions the header resolver recognises on re-import
ORDER_LINE_CAPTIONS: dict[str, str] = {
    "po_number":           "SA Belgesi",
    "item_number":         "Kalem",
    "supplier_code":       "Satıcı",
    "supplier_name":       "Satıcı Adı",
    "material":            "Malzeme",
    "description":         "Kısa Metin",
    "ordered_qty":         "SAS Miktarı",
    "open_qty":            "Bakiye Miktarı",
    "unit":                "Ölçü Birimi",
    "promised_date":       "Teslimat Tarihi",
    "revised_date":        "Revize Tarih",
    "first_promised_date": "İlk Tarih",
    "requester":           "Talep Eden",
    "creator":             "Oluşturan",
    "note":                "Açıklama",
    "days_remaining":      "KALAN GÜN",
    "risk":                "Durum",
}

REPORT_FIELDS: list[str] = [
    "change", "supplier_code", "supplier_name", "po_number", "item_number",
    "material", "description", "open_qty", "unit", "old_date", "new_date",
]


def save_dicts(path: Path, rows: list[dict], fieldnames: list[str]) -> None:
    """Write a list of dictionaries to a CSV file (utf-8 with BOM for Excel)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Saved CSV: %s (%d rows)", path, len(rows))


def export_order_lines(path: Path, lines: Iterable[OrderLine]) -> int:
    """Write order lines with spreadsheet captions; returns the row count."""
    captions = [ORDER_LINE_CAPTIONS[name] for name in ORDER_LINE_FIELDS]
    rows = [
        {ORDER_LINE_CAPTIONS[k]: v for k, v in line.to_record().items()}
        for line in lines
    ]
    save_dicts(path, rows, captions)
    return len(rows)


def report_rows(report: ComparisonReport) -> list[dict]:
    rows = []
    for vendor in report.vendors:
        for diff in vendor.items:
            line = diff.item
            rows.append({
                "change":        diff.kind,
                "supplier_code": vendor.vendor_id,
                "supplier_name": vendor.vendor_name,
                "po_number":     line.po_number,
                "item_number":   line.item_number,
                "material":      line.material,
                "description":   line.description,
                "open_qty":      line.open_qty,
                "unit":          line.unit,
                "old_date":      diff.old_date or "",
                "new_date":      diff.new_date or line.effective_date,
            })
    return rows


def export_report(path: Path, report: ComparisonReport) -> int:
    rows = report_rows(report)
    save_dicts(path, rows, REPORT_FIELDS)
    return len(rows)
