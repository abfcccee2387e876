# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - One fresh SQLite file per test under tmp_path, schema applied
# - For every test: BEGIN; ... ROLLBACK; repositories never commit
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Timestamps are passed explicitly wherever chronology matters
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3

import pytest

from purchase_reconciliation.database import get_connection
from purchase_reconciliation.database.repositories import (
    PurchaseHeader,
    PurchaseLine,
    PurchasesRepo,
)


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "purchases.db"


@pytest.fixture()
def conn(db_path):
    """Connection with FK on and row access by name; each test rolled back."""
    con = get_connection(db_path)
    con.execute("BEGIN;")
    try:
        yield con
        con.rollback()
    finally:
        con.close()


@pytest.fixture()
def purchase_id(conn: sqlite3.Connection) -> str:
    """
    PO-0001: Widget A 10 @ 5.00 and Widget B 4 @ 2.50 (total 60.00),
    placed 2025-01-05, nothing received.
    """
    PurchasesRepo(conn).create_purchase(
        PurchaseHeader(
            purchase_id="PO-0001",
            supplier_name="Vendor X",
            warehouse_id="WH-1",
            purchase_date="2025-01-05",
            created_by="ops",
        ),
        [
            PurchaseLine("Widget A", 10, 5.0),
            PurchaseLine("Widget B", 4, 2.5),
        ],
        at="2025-01-05T09:00:00+00:00",
    )
    return "PO-0001"


@pytest.fixture()
def item_ids(conn: sqlite3.Connection, purchase_id: str) -> dict:
    """{'Widget A': item_id, 'Widget B': item_id} for the seeded purchase."""
    return {it.item_name: it.item_id for it in PurchasesRepo(conn).list_items(purchase_id)}
