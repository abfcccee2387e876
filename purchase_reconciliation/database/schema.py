import sqlite3

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== PURCHASES ======================== */

CREATE TABLE IF NOT EXISTS purchases (
    purchase_id    TEXT PRIMARY KEY,
    supplier_name  TEXT,
    warehouse_id   TEXT,
    total_amount   NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(total_amount AS REAL) >= 0),
    purchase_date  DATE NOT NULL DEFAULT CURRENT_DATE,
    status         TEXT NOT NULL DEFAULT 'pending'
                   CHECK (status IN ('pending','partially_received','received',
                                     'partially_returned','returned','cancelled')),
    notes          TEXT,
    created_by     TEXT,
    created_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    last_updated   TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_purchases_status ON purchases(status);

CREATE TABLE IF NOT EXISTS purchase_items (
    item_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id        TEXT NOT NULL,
    item_name          TEXT,
    quantity           NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    received_quantity  NUMERIC NOT NULL DEFAULT 0,
    returned_quantity  NUMERIC NOT NULL DEFAULT 0,
    purchase_price     NUMERIC NOT NULL CHECK (CAST(purchase_price AS REAL) >= 0),
    CHECK (CAST(received_quantity AS REAL) >= 0
           AND CAST(received_quantity AS REAL) <= CAST(quantity AS REAL)),
    CHECK (CAST(returned_quantity AS REAL) >= 0
           AND CAST(returned_quantity AS REAL) <= CAST(received_quantity AS REAL)),
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_purchase_items_purchase ON purchase_items(purchase_id);

/* ======================== PAYMENTS ======================== */

CREATE TABLE IF NOT EXISTS purchase_payments (
    payment_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id     TEXT NOT NULL,
    amount          NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    payment_method  TEXT NOT NULL
                    CHECK (payment_method IN ('cash','bank_transfer','check','credit_card','other')),
    payment_date    DATE NOT NULL,
    status          TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','void')),
    notes           TEXT,
    created_by      TEXT,
    created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at      TIMESTAMP,
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_purchase_payments_purchase ON purchase_payments(purchase_id);

/* ======================== RETURNS & REFUNDS ======================== */

CREATE TABLE IF NOT EXISTS purchase_returns (
    return_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id     TEXT NOT NULL,
    total_amount    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(total_amount AS REAL) >= 0),
    return_date     DATE NOT NULL,
    reason          TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'completed'
                    CHECK (status IN ('pending','completed','cancelled')),
    refund_status   TEXT NOT NULL DEFAULT 'pending'
                    CHECK (refund_status IN ('pending','processing','completed','failed','cancelled')),
    refund_amount   NUMERIC NOT NULL DEFAULT 0,
    processed_by    TEXT,
    created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_purchase_returns_purchase ON purchase_returns(purchase_id);

CREATE TABLE IF NOT EXISTS purchase_return_items (
    return_item_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id          INTEGER NOT NULL,
    item_id            INTEGER NOT NULL,
    quantity_returned  NUMERIC NOT NULL CHECK (CAST(quantity_returned AS REAL) > 0),
    unit_price         NUMERIC NOT NULL,
    FOREIGN KEY (return_id) REFERENCES purchase_returns(return_id) ON DELETE CASCADE,
    FOREIGN KEY (item_id) REFERENCES purchase_items(item_id)
);

CREATE TABLE IF NOT EXISTS refund_transactions (
    transaction_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id       INTEGER NOT NULL,
    payment_id      INTEGER NOT NULL,
    refund_amount   NUMERIC NOT NULL CHECK (CAST(refund_amount AS REAL) > 0),
    refund_method   TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending','processing','completed','failed','cancelled')),
    failure_reason  TEXT,
    processed_at    TIMESTAMP,
    created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (return_id) REFERENCES purchase_returns(return_id) ON DELETE CASCADE,
    FOREIGN KEY (payment_id) REFERENCES purchase_payments(payment_id)
);
CREATE INDEX IF NOT EXISTS idx_refund_transactions_return ON refund_transactions(return_id);

/* ======================== TIMELINE ======================== */

/* append-only; rows are never updated */
CREATE TABLE IF NOT EXISTS purchase_events (
    event_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id      TEXT NOT NULL,
    event_type       TEXT NOT NULL
                     CHECK (event_type IN ('order_placed','partial_receipt','full_receipt',
                                           'partial_return','full_return','payment_made',
                                           'payment_voided','status_change','balance_resolved',
                                           'cancelled')),
    event_title      TEXT NOT NULL,
    event_description TEXT,
    previous_status  TEXT,
    new_status       TEXT,
    payment_id       INTEGER,
    return_id        INTEGER,
    return_amount    NUMERIC,
    payment_amount   NUMERIC,
    metadata         TEXT,
    created_by       TEXT,
    created_at       TIMESTAMP NOT NULL,
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_purchase_events_purchase ON purchase_events(purchase_id, created_at);

DROP TRIGGER IF EXISTS trg_purchase_events_no_update;
CREATE TRIGGER trg_purchase_events_no_update
BEFORE UPDATE ON purchase_events
BEGIN
    SELECT RAISE(ABORT, 'purchase_events is append-only');
END;
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the idempotent schema on an open connection (no commit)."""
    conn.executescript(SQL)
