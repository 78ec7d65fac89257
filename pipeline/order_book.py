"""
Session state for one loaded order book.

OrderBook owns the current order lines and the warning threshold.  Lines are
never mutated in place: every edit produces new records whose derived fields
have already been recomputed, so a reader never sees a stale days-remaining
or risk bucket.
"""
import logging
from datetime import date
from typing import Iterable, Optional

from models.order_line import OrderLine
from models.result import OrderUpdate, VendorSummary
from models.supplier import SupplierContact
from .aggregator import find_vendor, group_by_supplier_name, rank_vendors
from .classifier import DEFAULT_WARNING_THRESHOLD, reclassify, refresh_line, sort_by_urgency

logger = logging.getLogger(__name__)


def _matches(line: OrderLine, po_number: str, item_number: str) -> bool:
    # An update without an item number applies to every line of the order
    return line.po_number == po_number and (not item_number or line.item_number == item_number)


class OrderBook:
    """
    Usage:
        book = OrderBook(lines, threshold=10)
        book.update_date("4500012345", "10", "15.05.2025")
        book.set_threshold(15)
        summaries = book.vendor_summaries()
    """

    def __init__(
        self,
        lines: Iterable[OrderLine],
        threshold: int = DEFAULT_WARNING_THRESHOLD,
        contacts: Optional[Iterable[SupplierContact]] = None,
        today: Optional[date] = None,
    ):
        self._threshold = threshold
        self._today = today
        self._lines: tuple[OrderLine, ...] = tuple(reclassify(lines, threshold))
        self.contacts: dict[str, SupplierContact] = {c.code: c for c in contacts or ()}

    @property
    def lines(self) -> tuple[OrderLine, ...]:
        return self._lines

    @property
    def threshold(self) -> int:
        return self._threshold

    def __len__(self) -> int:
        return len(self._lines)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_threshold(self, threshold: int) -> None:
        """Change the warning threshold and reclassify every line."""
        self._threshold = threshold
        self._lines = tuple(reclassify(self._lines, threshold))
        logger.info("Warning threshold set to %d days", threshold)

    def _edit(self, po_number: str, item_number: str, changes: dict) -> int:
        updated = 0
        new_lines = []
        for line in self._lines:
            if _matches(line, po_number, item_number):
                line = refresh_line(line.model_copy(update=changes), self._threshold, self._today)
                updated += 1
            new_lines.append(line)
        self._lines = tuple(new_lines)
        if not updated:
            logger.warning("No order line matches %s/%s", po_number, item_number or "*")
        return updated

    def update_date(self, po_number: str, item_number: str, new_date: str) -> int:
        """Set the revised delivery date; returns the number of lines changed."""
        return self._edit(po_number, item_number, {"revised_date": new_date.strip()})

    def update_note(self, po_number: str, item_number: str, note: str) -> int:
        return self._edit(po_number, item_number, {"note": note})

    def apply_updates(self, updates: Iterable[OrderUpdate]) -> int:
        """Apply confirmed date updates through the same path as manual edits."""
        total = 0
        for update in updates:
            total += self.update_date(update.po_number, update.item_number, update.new_date)
        logger.info("Applied date updates to %d order lines", total)
        return total

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def vendor_summaries(self, ranked: bool = True) -> list[VendorSummary]:
        summaries = group_by_supplier_name(self._lines)
        return rank_vendors(summaries) if ranked else summaries

    def find_vendor(self, name: str) -> Optional[VendorSummary]:
        return find_vendor(self.vendor_summaries(ranked=False), name)

    def lines_for_supplier(self, name: str) -> list[OrderLine]:
        """A supplier's lines, most urgent first (the drafting hand-off order)."""
        vendor = self.find_vendor(name)
        return sort_by_urgency(vendor.items) if vendor else []

    def contact_for(self, supplier_code: str) -> Optional[SupplierContact]:
        return self.contacts.get(supplier_code)
