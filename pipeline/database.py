"""
SQLite persistence for order-book snapshots and supplier contacts.

One database file (output/tracker.db) holds:

  - snapshots    one row per loaded export (source file, time, threshold)
  - order_lines  the flat order-line records of each snapshot, keyed by
                 (snapshot_id, order_key); the key matches the diff engine's
                 identity (order number + item number or material)
  - suppliers    contact master data, upserted by supplier code

Stored records are flat primitives only, so a stored snapshot can be read
back into OrderLine records and diffed against a fresh export.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from models.order_line import OrderLine
from models.supplier import SupplierContact

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    source_file   TEXT    NOT NULL,
    loaded_at     TEXT    NOT NULL,   -- ISO-8601 UTC
    threshold     INTEGER NOT NULL,
    line_count    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS order_lines (
    snapshot_id   INTEGER NOT NULL REFERENCES snapshots (id) ON DELETE CASCADE,
    order_key     TEXT    NOT NULL,

    -- Key fields (denormalised for filtering)
    po_number     TEXT    NOT NULL,
    item_number   TEXT,
    supplier_code TEXT,
    supplier_name TEXT,
    days_remaining INTEGER,
    risk          TEXT,

    -- Full OrderLine record serialised as JSON
    record        TEXT    NOT NULL,

    PRIMARY KEY (snapshot_id, order_key)
);

CREATE INDEX IF NOT EXISTS idx_lines_supplier ON order_lines (snapshot_id, supplier_code);

CREATE TABLE IF NOT EXISTS suppliers (
    code          TEXT PRIMARY KEY,
    record        TEXT NOT NULL,
    source_file   TEXT,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _key_text(line: OrderLine) -> str:
    # JSON array text, so no separator can appear inside a key part
    return json.dumps(list(line.key), ensure_ascii=False)


class SnapshotStore:
    """Thin wrapper around an SQLite database file for snapshot history."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(
        self,
        lines: Iterable[OrderLine],
        source_file: str,
        threshold: int,
    ) -> int:
        """Store a full snapshot; returns its id.  Duplicate keys keep the last line."""
        rows = {}
        for line in lines:
            rows[_key_text(line)] = line

        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO snapshots (source_file, loaded_at, threshold, line_count) VALUES (?, ?, ?, ?)",
                (source_file, _now(), threshold, len(rows)),
            )
            snapshot_id = cur.lastrowid
            conn.executemany(
                """
                INSERT INTO order_lines (
                    snapshot_id, order_key, po_number, item_number,
                    supplier_code, supplier_name, days_remaining, risk, record
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        snapshot_id, key, line.po_number, line.item_number,
                        line.supplier_code, line.supplier_name,
                        line.days_remaining, line.risk,
                        json.dumps(line.to_record(), ensure_ascii=False),
                    )
                    for key, line in rows.items()
                ],
            )

        logger.info("Saved snapshot %d: %d lines from %s", snapshot_id, len(rows), source_file)
        return snapshot_id

    def latest_snapshot_id(self) -> Optional[int]:
        with self._conn() as conn:
            row = conn.execute("SELECT MAX(id) AS id FROM snapshots").fetchone()
        return row["id"] if row else None

    def list_snapshots(self, limit: int = 50) -> list[dict]:
        """Snapshot metadata, newest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, source_file, loaded_at, threshold, line_count
                   FROM snapshots ORDER BY id DESC LIMIT ?""",
                (limit,),
            ).fetchall()
        return [dict(r) for r in rows]

    def load_lines(self, snapshot_id: int) -> list[OrderLine]:
        """Order lines of one snapshot in insertion order ([] if unknown)."""
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT record FROM order_lines WHERE snapshot_id = ? ORDER BY rowid",
                (snapshot_id,),
            ).fetchall()
        return [OrderLine.model_validate(json.loads(r["record"])) for r in rows]

    def delete_snapshot(self, snapshot_id: int) -> bool:
        with self._conn() as conn:
            conn.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
            return conn.execute("SELECT changes()").fetchone()[0] > 0

    # ------------------------------------------------------------------
    # Supplier contacts
    # ------------------------------------------------------------------

    def upsert_contacts(
        self,
        contacts: Iterable[SupplierContact],
        source_file: str = "",
    ) -> tuple[int, int]:
        """Insert or update contacts by supplier code; returns (inserted, updated)."""
        inserted = updated = 0
        now = _now()
        with self._conn() as conn:
            existing = {r["code"] for r in conn.execute("SELECT code FROM suppliers")}
            for contact in contacts:
                code = contact.code.strip()
                if not code:
                    continue
                record = json.dumps(contact.model_dump(), ensure_ascii=False)
                if code in existing:
                    conn.execute(
                        "UPDATE suppliers SET record=?, source_file=?, updated_at=? WHERE code=?",
                        (record, source_file, now, code),
                    )
                    updated += 1
                else:
                    conn.execute(
                        """INSERT INTO suppliers (code, record, source_file, created_at, updated_at)
                           VALUES (?, ?, ?, ?, ?)""",
                        (code, record, source_file, now, now),
                    )
                    existing.add(code)
                    inserted += 1

        logger.info("Supplier sync: %d inserted, %d updated", inserted, updated)
        return inserted, updated

    def get_contacts(self) -> dict[str, SupplierContact]:
        with self._conn() as conn:
            rows = conn.execute("SELECT record FROM suppliers ORDER BY code").fetchall()
        contacts = [SupplierContact.model_validate(json.loads(r["record"])) for r in rows]
        return {c.code: c for c in contacts}
