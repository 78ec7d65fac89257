from .workbook_loader import WorkbookGrids, load_grids
from .header_resolver import HeaderMatch, resolve_header
from .row_mapper import map_order_rows, map_contact_rows
from .classifier import classify, reclassify, refresh_line
from .aggregator import group_by_supplier_name, rank_vendors
from .diff_engine import compare_snapshots
from .order_book import OrderBook
from .llm_drafter import EmailDrafter, DraftingError
from .database import SnapshotStore
from .processor import OrderProcessor, Snapshot

__all__ = [
    "WorkbookGrids", "load_grids", "HeaderMatch", "resolve_header",
    "map_order_rows", "map_contact_rows", "classify", "reclassify", "refresh_line",
    "group_by_supplier_name", "rank_vendors", "compare_snapshots", "OrderBook",
    "EmailDrafter", "DraftingError", "SnapshotStore", "OrderProcessor", "Snapshot",
]
