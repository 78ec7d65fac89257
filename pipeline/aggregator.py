"""
Per-supplier rollups for the dashboard.

Lines are grouped by supplier *display name*, not code.  The ERP exports
sometimes carry several codes under one cleaned-up name and the dashboard
shows them as one supplier.  The diff engine groups by code instead; see
diff_engine.group_by_supplier_code.
"""
from typing import Iterable

from models.order_line import OrderLine, RISK_CRITICAL, RISK_WARNING
from models.result import VendorSummary


def group_by_supplier_name(lines: Iterable[OrderLine]) -> list[VendorSummary]:
    """Rebuild every summary from scratch, in order of first appearance."""
    groups: dict[str, VendorSummary] = {}
    for line in lines:
        summary = groups.get(line.supplier_name)
        if summary is None:
            summary = VendorSummary(vendor_id=line.supplier_code, vendor_name=line.supplier_name)
            groups[line.supplier_name] = summary
        summary.items.append(line)
        summary.item_count += 1
        if line.risk == RISK_CRITICAL:
            summary.critical_count += 1
        elif line.risk == RISK_WARNING:
            summary.warning_count += 1
    return list(groups.values())


def rank_vendors(summaries: Iterable[VendorSummary]) -> list[VendorSummary]:
    """Most critical first, then most warnings, then most open lines."""
    return sorted(
        summaries,
        key=lambda s: (-s.critical_count, -s.warning_count, -s.item_count),
    )


def find_vendor(summaries: Iterable[VendorSummary], name: str) -> VendorSummary | None:
    """Case-insensitive lookup by display name or supplier code."""
    wanted = name.strip().casefold()
    for summary in summaries:
        if summary.vendor_name.casefold() == wanted or summary.vendor_id.casefold() == wanted:
            return summary
    return None
