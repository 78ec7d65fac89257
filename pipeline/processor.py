"""
Main pipeline orchestrator.

OrderProcessor ties the spreadsheet boundary to the pure transformations:
  1. workbook_loader  -- file -> raw cell grids (orders + optional contacts)
  2. row_mapper       -- grids -> OrderLine / SupplierContact records
                         (header_resolver, dates and classifier underneath)
  3. OrderBook        -- session state: threshold, edits, vendor summaries
  4. diff_engine      -- two snapshots -> ComparisonReport
  5. SnapshotStore    -- optional history in SQLite (output/tracker.db)
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from config import Config
from models.order_line import OrderLine
from models.result import ComparisonReport
from models.supplier import SupplierContact
from .database import SnapshotStore
from .diff_engine import compare_snapshots
from .llm_drafter import EmailDrafter
from .order_book import OrderBook
from .row_mapper import map_contact_rows, map_order_rows
from .workbook_loader import load_grids

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """One loaded export: its order lines and any supplier contacts."""
    source_file: str
    lines: list[OrderLine] = field(default_factory=list)
    contacts: list[SupplierContact] = field(default_factory=list)
    loaded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_empty(self) -> bool:
        return not self.lines


class OrderProcessor:
    """
    Usage:
        processor = OrderProcessor(Config())
        snapshot = processor.load("exports/2025-05-12.xlsx")
        book = processor.order_book(snapshot)
        report = processor.compare("exports/2025-05-05.xlsx", "exports/2025-05-12.xlsx")
    """

    def __init__(self, config: Config, today: Optional[date] = None):
        self.config = config
        self.today = today
        self._store: Optional[SnapshotStore] = None

    @property
    def store(self) -> SnapshotStore:
        if self._store is None:
            self._store = SnapshotStore(self.config.db_path)
        return self._store

    def drafter(self) -> EmailDrafter:
        return EmailDrafter(
            model=self.config.llm_model,
            base_url=self.config.llm_base_url,
            api_key=self.config.llm_api_key,
            temperature=self.config.llm_temperature,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, path: str | Path) -> Snapshot:
        """Read and map one export.  An unreadable file gives an empty snapshot."""
        grids = load_grids(path)
        lines = map_order_rows(grids.orders, self.config.warning_threshold, self.today)
        contacts = map_contact_rows(grids.contacts)
        if not lines:
            logger.warning("No order lines found in %s", Path(path).name)
        return Snapshot(source_file=str(path), lines=lines, contacts=contacts)

    def order_book(self, snapshot: Snapshot) -> OrderBook:
        return OrderBook(
            snapshot.lines,
            threshold=self.config.warning_threshold,
            contacts=snapshot.contacts,
            today=self.today,
        )

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def compare(self, old_path: str | Path, new_path: str | Path) -> ComparisonReport:
        old = self.load(old_path)
        new = self.load(new_path)
        return compare_snapshots(old.lines, new.lines)

    def compare_with_latest(self, snapshot: Snapshot) -> Optional[ComparisonReport]:
        """Diff a fresh snapshot against the newest stored one (None if none stored)."""
        latest = self.store.latest_snapshot_id()
        if latest is None:
            logger.info("No stored snapshot to compare against")
            return None
        return compare_snapshots(self.store.load_lines(latest), snapshot.lines)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, snapshot: Snapshot, lines: Optional[list[OrderLine]] = None) -> int:
        """Store the snapshot (or edited lines for it) and sync its contacts."""
        snapshot_id = self.store.save_snapshot(
            lines if lines is not None else snapshot.lines,
            snapshot.source_file,
            self.config.warning_threshold,
        )
        if snapshot.contacts:
            self.store.upsert_contacts(snapshot.contacts, Path(snapshot.source_file).name)
        return snapshot_id

    def check_setup(self) -> dict:
        """Return a status dict for the LLM backend and the database."""
        return {
            "llm": self.drafter().check_connection(),
            "database": {
                "path": str(self.config.db_path),
                "exists": self.config.db_path.exists(),
            },
            "threshold": self.config.warning_threshold,
        }
