from __future__ import annotations
import json
import logging
import sqlite3
from typing import Optional

from ...constants import EVENT_TYPES
from ...modules.purchase.models import PurchaseEvent
from ...utils.helpers import now_iso

_log = logging.getLogger(__name__)


def event_from_row(r: sqlite3.Row) -> PurchaseEvent:
    return PurchaseEvent(
        event_type=r["event_type"],
        created_at=r["created_at"],
        purchase_id=r["purchase_id"],
        event_id=int(r["event_id"]),
        title=r["event_title"],
        description=r["event_description"],
        previous_status=r["previous_status"],
        new_status=r["new_status"],
        payment_id=r["payment_id"],
        return_amount=None if r["return_amount"] is None else float(r["return_amount"]),
        payment_amount=None if r["payment_amount"] is None else float(r["payment_amount"]),
    )


class PurchaseEventsRepo:
    """Append-only purchase timeline. No commit here; caller controls the transaction."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def create_event(
        self,
        purchase_id: str,
        event_type: str,
        title: str,
        *,
        description: Optional[str] = None,
        previous_status: Optional[str] = None,
        new_status: Optional[str] = None,
        payment_id: Optional[int] = None,
        return_id: Optional[int] = None,
        return_amount: Optional[float] = None,
        payment_amount: Optional[float] = None,
        metadata: Optional[dict] = None,
        created_by: Optional[str] = None,
        at: Optional[str] = None,
    ) -> int:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        cur = self.conn.execute(
            """
            INSERT INTO purchase_events (
                purchase_id, event_type, event_title, event_description,
                previous_status, new_status, payment_id, return_id,
                return_amount, payment_amount, metadata, created_by, created_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                purchase_id, event_type, title, description,
                previous_status, new_status, payment_id, return_id,
                return_amount, payment_amount,
                json.dumps(metadata) if metadata is not None else None,
                created_by, at or now_iso(),
            ),
        )
        _log.debug("event %s recorded for %s", event_type, purchase_id)
        return int(cur.lastrowid)

    def timeline(self, purchase_id: str) -> list[PurchaseEvent]:
        rows = self.conn.execute(
            """
            SELECT * FROM purchase_events
            WHERE purchase_id = ?
            ORDER BY created_at, event_id
            """,
            (purchase_id,),
        ).fetchall()
        return [event_from_row(r) for r in rows]

    def metadata(self, event_id: int) -> dict:
        row = self.conn.execute(
            "SELECT metadata FROM purchase_events WHERE event_id = ?", (event_id,)
        ).fetchone()
        if row is None or not row["metadata"]:
            return {}
        return json.loads(row["metadata"])
