"""
Snapshot comparison.

Compares two full order books (old / new export of the same ERP report) by
order identity and reports, per supplier:
  added    key only in the new snapshot (new order line)
  removed  key only in the old snapshot (delivered or closed)
  updated  key in both, effective delivery date changed
Lines present in both with the same effective date are unchanged and are
not reported.

Diff items are grouped by supplier *code* so a supplier stays the same
bucket across snapshots even when its display name drifts.  This differs
from the dashboard, which groups by name (aggregator.group_by_supplier_name).
"""
import logging
from typing import Iterable

from models.order_line import OrderLine
from models.result import ComparisonReport, DiffItem, VendorComparison

logger = logging.getLogger(__name__)


def order_key(line: OrderLine) -> tuple[str, str]:
    return line.key


def effective_date(line: OrderLine) -> str:
    return line.effective_date


def index_by_key(lines: Iterable[OrderLine]) -> dict[tuple[str, str], OrderLine]:
    """Key -> line map.  A key seen twice keeps its last line."""
    index: dict[tuple[str, str], OrderLine] = {}
    for line in lines:
        key = order_key(line)
        if key in index:
            logger.debug("Duplicate order key %s/%s in snapshot", *key)
        index[key] = line
    return index


class _SupplierBuckets:
    """Comparison entries keyed by supplier code, in first-seen order."""

    def __init__(self) -> None:
        self._vendors: dict[str, VendorComparison] = {}

    def entry(self, line: OrderLine) -> VendorComparison:
        vendor = self._vendors.get(line.supplier_code)
        if vendor is None:
            vendor = VendorComparison(
                vendor_id=line.supplier_code,
                vendor_name=line.supplier_name,
            )
            self._vendors[line.supplier_code] = vendor
        return vendor

    def values(self) -> list[VendorComparison]:
        return list(self._vendors.values())


def group_by_supplier_code(
    items: Iterable[DiffItem],
    seed_lines: Iterable[OrderLine] = (),
) -> list[VendorComparison]:
    """
    Attribute diff items to per-supplier-code comparisons with counts.

    seed_lines (the new snapshot, unchanged lines included) open their
    suppliers' buckets first, which fixes bucket order and display name.
    Seeded suppliers without changes come back with zero counts.
    """
    buckets = _SupplierBuckets()
    for line in seed_lines:
        buckets.entry(line)
    for diff in items:
        vendor = buckets.entry(diff.item)
        vendor.items.append(diff)
        if diff.kind == "added":
            vendor.added_count += 1
        elif diff.kind == "removed":
            vendor.removed_count += 1
        else:
            vendor.updated_count += 1
    return buckets.values()


def diff_items(old_lines: Iterable[OrderLine], new_lines: Iterable[OrderLine]) -> list[DiffItem]:
    """Classify every key: new-side changes first, then removals."""
    old_index = index_by_key(old_lines)
    new_index = index_by_key(new_lines)

    items: list[DiffItem] = []
    unchanged = 0

    for key, new_line in new_index.items():
        old_line = old_index.get(key)
        if old_line is None:
            items.append(DiffItem(kind="added", item=new_line))
            continue
        old_date = effective_date(old_line)
        new_date = effective_date(new_line)
        if old_date != new_date:
            items.append(DiffItem(kind="updated", item=new_line, old_date=old_date, new_date=new_date))
        else:
            unchanged += 1

    for key, old_line in old_index.items():
        if key not in new_index:
            items.append(DiffItem(kind="removed", item=old_line))

    logger.debug("Diff: %d changed, %d unchanged", len(items), unchanged)
    return items


def compare_snapshots(
    old_lines: Iterable[OrderLine],
    new_lines: Iterable[OrderLine],
) -> ComparisonReport:
    """
    Build the comparison report between two snapshots.

    Suppliers without changes are dropped.  Suppliers are ordered by
    added + updated, descending; equal counts keep the order in which the
    supplier first appears in the new snapshot (suppliers seen only in the
    old one follow), so removal-only suppliers end up last.
    """
    old_lines = list(old_lines)
    new_lines = list(new_lines)
    new_index = index_by_key(new_lines)
    vendors = [
        v for v in group_by_supplier_code(diff_items(old_lines, new_lines), new_index.values())
        if v.change_count > 0
    ]
    vendors.sort(key=lambda v: -(v.added_count + v.updated_count))

    report = ComparisonReport(
        total_added=sum(v.added_count for v in vendors),
        total_removed=sum(v.removed_count for v in vendors),
        total_updated=sum(v.updated_count for v in vendors),
        vendors=vendors,
    )
    logger.info(
        "Comparison: %d added, %d removed, %d updated across %d suppliers",
        report.total_added, report.total_removed, report.total_updated, len(vendors),
    )
    return report
