from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from .order_line import OrderLine


DiffKind = Literal["added", "removed", "updated"]


class VendorSummary(BaseModel):
    """Per-supplier dashboard rollup. Derived on demand, never persisted."""
    vendor_id: str                          # supplier code of the first member line
    vendor_name: str
    item_count: int = 0
    critical_count: int = 0
    warning_count: int = 0
    items: List[OrderLine] = Field(default_factory=list)


class DiffItem(BaseModel):
    """A single change between two snapshots for one order key."""
    kind: DiffKind
    item: OrderLine                         # new line for added/updated, old line for removed
    old_date: Optional[str] = None          # effective date before (updated only)
    new_date: Optional[str] = None          # effective date after (updated only)


class VendorComparison(BaseModel):
    """All diff items attributed to one supplier code."""
    vendor_id: str
    vendor_name: str
    added_count: int = 0
    removed_count: int = 0
    updated_count: int = 0
    items: List[DiffItem] = Field(default_factory=list)

    @property
    def change_count(self) -> int:
        return self.added_count + self.removed_count + self.updated_count


class ComparisonReport(BaseModel):
    """
    Result of comparing two snapshots of the order book.
    vendors holds only suppliers with at least one change.
    """
    total_added: int = 0
    total_removed: int = 0
    total_updated: int = 0
    vendors: List[VendorComparison] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.total_added or self.total_removed or self.total_updated)


class OrderUpdate(BaseModel):
    """A proposed delivery-date change extracted by the drafting assistant."""
    po_number: str
    item_number: str = ""
    new_date: str                           # DD.MM.YYYY


class UpdateExtraction(BaseModel):
    """Structured answer of an update-extraction round-trip."""
    message: str
    updates: List[OrderUpdate] = Field(default_factory=list)
