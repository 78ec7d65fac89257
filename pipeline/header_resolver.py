"""
Header detection for loosely structured ERP spreadsheet exports.

Exports often carry a few title rows, blank rows or merged-cell artifacts
above the real header, and column captions drift between exports
("Satıcı Adı", "Satici Adi", "Tedarikçi Adı" ...).  Resolution runs in two
stages:
  1. locate_header_row  -- first row (within the scan window) containing at
                           least N anchor captions anywhere in its text
  2. resolve_columns    -- per semantic field, the first header cell whose
                           normalised caption equals one of the field's aliases

Fields that cannot be found map to None; callers substitute defaults.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 20
MIN_ANCHOR_MATCHES = 2

_TRANSLITERATION = str.maketrans({
    "ı": "i", "İ": "i",
    "ş": "s", "Ş": "s",
    "ğ": "g", "Ğ": "g",
    "ü": "u", "Ü": "u",
    "ö": "o", "Ö": "o",
    "ç": "c", "Ç": "c",
})
_NON_ALNUM = re.compile(r"[^a-z0-9]")


# Anchor captions used to recognise the order sheet's header row
ORDER_ANCHORS: tuple[str, ...] = (
    "SA Belgesi", "Satıcı Adı", "Malzeme", "Kısa Metin", "Teslimat Tarihi",
)

# key: internal field name, value: known captions for that column
ORDER_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "po_number":           ("SA Belgesi", "SAS Numarasi", "Siparis No", "Belge"),
    "item_number":         ("Kalem", "Kalem No", "SAS Kalemi", "Siparis Kalemi"),
    "days_remaining":      ("KALAN GÜN", "Kalan Gun", "Gun"),
    "promised_date":       ("Teslimat Tarihi", "Teslim Tarihi", "Tarih"),
    "revised_date":        ("Revize Tarih", "Revize Tarihi", "Revised Date"),
    "first_promised_date": ("Ilk Tarih", "İlk Tarih", "Ilk Teslimat", "İlk Teslimat Tarihi"),
    "supplier_code":       ("Satici", "Satıcı", "Satıcı Kodu"),
    "supplier_name":       ("Satici Adi", "Satıcı Adı", "Tedarikçi", "Tedarikçi Adı"),
    "material":            ("Malzeme", "Malzeme No"),
    "description":         ("Kisa Metin", "Kısa Metin", "Malzeme Tanımı", "Metin"),
    "ordered_qty":         ("SAS Miktari", "Sipariş Miktarı", "Miktar"),
    "open_qty":            ("Bakiye Miktari", "Bakiye", "Acik Miktar"),
    "unit":                ("Olcu Birimi", "Ölçü Birimi", "Birim", "Olcu"),
    "requester":           ("Talep Eden", "Talep"),
    "creator":             ("Olusturan", "Oluşturan", "Yaratan", "Kaydeden"),
    "note":                ("Aciklama", "Açıklama", "Not", "Notlar"),
}

CONTACT_ANCHORS: tuple[str, ...] = (
    "Satıcı", "Satıcının adı", "Temsilci E-Mail", "Satınalma Uzmanı", "Tedarikçi Temsilcisi",
)
CONTACT_SCAN_ROWS = 10

CONTACT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "code":                  ("Satıcı", "Satici", "Vendor"),
    "name":                  ("Satıcının adı", "Saticinin adi", "Tedarikçi Adı"),
    "scope":                 ("Kapsam",),
    "sub_scope":             ("Alt Kapsam",),
    "city":                  ("İl", "Il", "Sehir"),
    "region":                ("Bölge", "Bolge"),
    "purchasing_specialist": ("Satınalma Uzmanı", "Satinalma Uzmani"),
    "rep_name":              ("Tedarikçi Temsilcisi", "Temsilci Adı", "İlgili Kişi"),
    "rep_phone":             ("Temsilci Tel", "Telefon", "Tel."),
    "rep_email":             ("Temsilci E-Mail", "Email", "E-Posta"),
}


@dataclass(frozen=True)
class HeaderMatch:
    """Where the header row is and which column each field lives in."""
    row_index: int
    columns: dict[str, Optional[int]] = field(default_factory=dict)

    def column(self, name: str) -> Optional[int]:
        return self.columns.get(name)

    @property
    def missing_fields(self) -> list[str]:
        return [name for name, idx in self.columns.items() if idx is None]


def normalize_header(value: Any) -> str:
    """Lower-case, transliterate Turkish letters and drop non-alphanumerics."""
    if value is None:
        return ""
    text = str(value).translate(_TRANSLITERATION).lower()
    return _NON_ALNUM.sub("", text)


def _row_text(row: Sequence[Any]) -> str:
    return "".join(normalize_header(cell) for cell in row if cell is not None)


def locate_header_row(
    grid: Sequence[Sequence[Any]],
    anchors: Sequence[str],
    scan_rows: int = HEADER_SCAN_ROWS,
    min_matches: int = MIN_ANCHOR_MATCHES,
) -> int:
    """
    Return the index of the first row within scan_rows that mentions at
    least min_matches anchors.  Falls back to row 0.
    """
    normalized_anchors = [normalize_header(a) for a in anchors]
    for i, row in enumerate(grid[:scan_rows]):
        text = _row_text(row or ())
        hits = sum(1 for a in normalized_anchors if a and a in text)
        if hits >= min_matches:
            logger.debug("Header row found at %d (%d anchors)", i, hits)
            return i
    logger.debug("No header row matched %d anchors; using row 0", min_matches)
    return 0


def find_column(header_row: Sequence[Any], aliases: Sequence[str]) -> Optional[int]:
    """Index of the first header cell equal (normalised) to any alias."""
    wanted = {normalize_header(a) for a in aliases}
    for idx, cell in enumerate(header_row):
        if not cell:
            continue
        if normalize_header(cell) in wanted:
            return idx
    return None


def resolve_columns(
    header_row: Sequence[Any],
    aliases: dict[str, Sequence[str]],
) -> dict[str, Optional[int]]:
    return {name: find_column(header_row, names) for name, names in aliases.items()}


def resolve_header(
    grid: Sequence[Sequence[Any]],
    anchors: Sequence[str] = ORDER_ANCHORS,
    aliases: Optional[dict[str, Sequence[str]]] = None,
    scan_rows: int = HEADER_SCAN_ROWS,
    min_matches: int = MIN_ANCHOR_MATCHES,
) -> HeaderMatch:
    """Locate the header row and map every field to a column (or None)."""
    aliases = ORDER_FIELD_ALIASES if aliases is None else aliases
    if not grid:
        return HeaderMatch(row_index=0, columns={name: None for name in aliases})

    row_index = locate_header_row(grid, anchors, scan_rows, min_matches)
    columns = resolve_columns(grid[row_index] or (), aliases)
    match = HeaderMatch(row_index=row_index, columns=columns)
    if match.missing_fields:
        logger.debug("Columns not found: %s", ", ".join(match.missing_fields))
    return match
