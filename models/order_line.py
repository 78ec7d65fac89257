from pydantic import BaseModel, ConfigDict
from typing import Literal


RiskBucket = Literal["critical", "warning", "ok"]

RISK_CRITICAL: RiskBucket = "critical"
RISK_WARNING: RiskBucket = "warning"
RISK_OK: RiskBucket = "ok"


class OrderLine(BaseModel):
    """
    One open purchase-order item as exported from the ERP spreadsheet.

    Records are immutable: edits go through model_copy() and the derived
    fields (days_remaining, risk) are recomputed by the classifier before the
    new record is handed out.  Dates are display strings (DD.MM.YYYY); an
    empty string means "not set".
    """
    model_config = ConfigDict(frozen=True)

    po_number: str                          # SA Belgesi
    item_number: str = ""                   # SAS Kalem No
    supplier_code: str = ""                 # Satıcı
    supplier_name: str = ""                 # Satıcı Adı (after fallback chain)
    material: str = ""                      # Malzeme
    description: str = ""                   # Kısa Metin
    ordered_qty: float = 0.0                # SAS Miktarı
    open_qty: float = 0.0                   # Bakiye Miktarı
    unit: str = "ADT"                       # Ölçü Birimi
    promised_date: str = ""                 # Teslimat Tarihi
    revised_date: str = ""                  # manual override
    first_promised_date: str = ""           # İlk Tarih
    requester: str = ""                     # Talep Eden
    creator: str = ""                       # Oluşturan
    note: str = ""                          # Açıklama / operator remarks

    days_remaining: int = 0                 # negative = overdue
    risk: RiskBucket = RISK_OK

    @property
    def key(self) -> tuple[str, str]:
        """Identity across snapshots: order number + item number (or material)."""
        return (self.po_number, self.item_number or self.material)

    @property
    def effective_date(self) -> str:
        """Revised date when one was set, otherwise the promised date."""
        return self.revised_date or self.promised_date

    def to_record(self) -> dict:
        """Flat dict of primitives for the snapshot store and CSV export."""
        return self.model_dump()
