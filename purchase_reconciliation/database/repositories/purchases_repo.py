from __future__ import annotations
from dataclasses import dataclass, field
import logging
import sqlite3
from typing import Iterable, Mapping, Optional

from ...modules.purchase.models import Purchase, PurchaseItem, PurchaseStats
from ...modules.purchase.status import derive_purchase_status, purchase_stats, quantity_totals
from ...modules.purchase.timeline import (
    receipt_event_type,
    return_event_type,
    should_mark_balance_resolved,
)
from ...utils.helpers import fmt_money, now_iso, today_str
from ...utils.validators import is_strictly_positive_number, non_empty, quantity_error
from .purchase_events_repo import PurchaseEventsRepo

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error raised for validation issues."""
    pass


@dataclass
class PurchaseHeader:
    purchase_id: str
    supplier_name: str | None = None
    warehouse_id: str | None = None
    purchase_date: str | None = None
    notes: str | None = None
    created_by: str | None = None


@dataclass
class PurchaseLine:
    item_name: str
    quantity: float
    purchase_price: float


@dataclass
class ReturnRequest:
    return_reason: str
    return_date: str
    returned_by: str
    # purchase_items.item_id -> quantity being returned now
    items: dict[int, float] = field(default_factory=dict)


def item_from_row(r: sqlite3.Row) -> PurchaseItem:
    return PurchaseItem(
        quantity=float(r["quantity"]),
        received_quantity=float(r["received_quantity"] or 0.0),
        returned_quantity=float(r["returned_quantity"] or 0.0),
        purchase_price=float(r["purchase_price"]),
        item_id=int(r["item_id"]),
        item_name=r["item_name"],
    )


def purchase_from_row(r: sqlite3.Row, items: Iterable[PurchaseItem]) -> Purchase:
    try:
        return Purchase(
            purchase_id=str(r["purchase_id"]),
            total_amount=float(r["total_amount"]),
            items=tuple(items),
            status=r["status"],
            created_by=r["created_by"],
            warehouse_id=r["warehouse_id"],
            supplier_name=r["supplier_name"],
            created_at=r["created_at"],
        )
    except (IndexError, KeyError, TypeError, ValueError) as e:
        raise DomainError(f"Malformed purchase row: {e}") from e


class PurchasesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.events = PurchaseEventsRepo(conn)

    # ---------- Query ----------
    def get_header(self, pid: str) -> sqlite3.Row | None:
        return self.conn.execute("SELECT * FROM purchases WHERE purchase_id=?", (pid,)).fetchone()

    def list_items(self, pid: str) -> list[PurchaseItem]:
        rows = self.conn.execute(
            """
            SELECT item_id, purchase_id, item_name,
                   CAST(quantity AS REAL) AS quantity,
                   CAST(received_quantity AS REAL) AS received_quantity,
                   CAST(returned_quantity AS REAL) AS returned_quantity,
                   CAST(purchase_price AS REAL) AS purchase_price
            FROM purchase_items
            WHERE purchase_id=?
            ORDER BY item_id
            """,
            (pid,),
        ).fetchall()
        return [item_from_row(r) for r in rows]

    def get_purchase(self, pid: str) -> Purchase | None:
        header = self.get_header(pid)
        if header is None:
            return None
        return purchase_from_row(header, self.list_items(pid))

    def require_purchase(self, pid: str) -> Purchase:
        purchase = self.get_purchase(pid)
        if purchase is None:
            raise DomainError(f"Purchase not found: {pid}")
        return purchase

    def list_purchases(self, status: Optional[str] = None) -> list[Purchase]:
        sql = "SELECT * FROM purchases"
        params: tuple = ()
        if status:
            sql += " WHERE status = ?"
            params = (status,)
        sql += " ORDER BY DATE(purchase_date) DESC, purchase_id DESC"
        rows = self.conn.execute(sql, params).fetchall()
        return [purchase_from_row(r, self.list_items(r["purchase_id"])) for r in rows]

    def stats(self) -> PurchaseStats:
        return purchase_stats(self.list_purchases())

    # ---------- Create ----------
    def create_purchase(
        self,
        header: PurchaseHeader,
        lines: Iterable[PurchaseLine],
        *,
        at: Optional[str] = None,
    ) -> str:
        """
        - total_amount = sum(quantity * purchase_price); fixed from here on.
        - Insert header with status='pending' and the lines with nothing received.
        - Record an 'order_placed' timeline event.
        - No commit here; caller controls the transaction boundary.
        """
        lines_list = list(lines)
        if not non_empty(header.purchase_id):
            raise DomainError("Purchase id cannot be empty.")
        if not lines_list:
            raise DomainError("A purchase needs at least one item.")
        for ln in lines_list:
            if not is_strictly_positive_number(ln.quantity):
                raise DomainError(f"Quantity for '{ln.item_name}' must be greater than zero.")
            if float(ln.purchase_price) < 0:
                raise DomainError(f"Price for '{ln.item_name}' cannot be negative.")

        total_amount = sum(float(ln.quantity) * float(ln.purchase_price) for ln in lines_list)
        created_at = at or now_iso()

        self.conn.execute(
            """
            INSERT INTO purchases (
                purchase_id, supplier_name, warehouse_id, total_amount, purchase_date,
                status, notes, created_by, created_at, last_updated
            ) VALUES (?, ?, ?, ?, ?, 'pending', ?, ?, ?, ?)
            """,
            (
                header.purchase_id, header.supplier_name, header.warehouse_id, total_amount,
                header.purchase_date or today_str(), header.notes, header.created_by,
                created_at, created_at,
            ),
        )
        for ln in lines_list:
            self.conn.execute(
                """
                INSERT INTO purchase_items(purchase_id, item_name, quantity, purchase_price)
                VALUES (?, ?, ?, ?)
                """,
                (header.purchase_id, ln.item_name, float(ln.quantity), float(ln.purchase_price)),
            )

        self.events.create_event(
            header.purchase_id,
            "order_placed",
            "Order Placed",
            description=f"Purchase order created with {len(lines_list)} item(s) "
                        f"totalling {fmt_money(total_amount)}",
            new_status="pending",
            created_by=header.created_by,
            at=created_at,
        )
        _log.info("created purchase %s (%d items, total %.2f)", header.purchase_id, len(lines_list), total_amount)
        return header.purchase_id

    # ---------- Status ----------
    def _set_status(self, pid: str, status: str, at: Optional[str] = None) -> None:
        self.conn.execute(
            "UPDATE purchases SET status=?, last_updated=? WHERE purchase_id=?",
            (status, at or now_iso(), pid),
        )

    def recompute_status(self, pid: str) -> str:
        """Re-derive the status from item quantities and store it. Idempotent."""
        purchase = self.require_purchase(pid)
        if purchase.status == "cancelled":
            return purchase.status
        status = derive_purchase_status(purchase.items)
        if status != purchase.status:
            self._set_status(pid, status)
            _log.info("purchase %s status %s -> %s", pid, purchase.status, status)
        return status

    # ---------- Receipts ----------
    def record_receipt(
        self,
        pid: str,
        received: Mapping[int, float],
        *,
        created_by: Optional[str] = None,
        at: Optional[str] = None,
    ) -> str:
        """
        Set absolute received quantities per item_id, then recompute status.

        Each line must keep 0 <= returned <= received <= ordered. A receipt
        event is recorded when the total received quantity changed.
        Returns the new status. No commit here.
        """
        purchase = self.require_purchase(pid)
        if purchase.status == "cancelled":
            raise DomainError("Cannot receive items on a cancelled purchase.")
        by_id = {it.item_id: it for it in purchase.items}

        change = 0.0
        for item_id, new_qty in received.items():
            item = by_id.get(item_id)
            if item is None:
                raise DomainError(f"Item {item_id} does not belong to purchase {pid}.")
            err = quantity_error(item.quantity, new_qty, item.returned_quantity)
            if err:
                raise DomainError(f"{item.item_name or item_id}: {err}")
            change += float(new_qty) - item.received_quantity
            self.conn.execute(
                "UPDATE purchase_items SET received_quantity=? WHERE item_id=?",
                (float(new_qty), item_id),
            )

        items = self.list_items(pid)
        new_status = derive_purchase_status(items)
        stamp = at or now_iso()
        self._set_status(pid, new_status, stamp)

        if abs(change) > 0:
            t = quantity_totals(items)
            event_type = receipt_event_type(items)
            self.events.create_event(
                pid,
                event_type,
                "Items Fully Received" if event_type == "full_receipt" else "Partial Receipt",
                description=f"{t.received:g} out of {t.ordered:g} items received ({change:+g})",
                previous_status=purchase.status,
                new_status=new_status,
                metadata={"quantity_change": change, "total_received": t.received, "total_ordered": t.ordered},
                created_by=created_by,
                at=stamp,
            )
        _log.info("receipt on %s: change %+g, status %s -> %s", pid, change, purchase.status, new_status)
        return new_status

    # ---------- Returns ----------
    def process_return(
        self,
        pid: str,
        req: ReturnRequest,
        *,
        at: Optional[str] = None,
    ) -> int:
        """
        Return received goods to the supplier.

        - Validates reason/date/user and that no line returns more than is on hand.
        - Raises returned_quantity, records purchase_returns (+ lines) with
          refund_status='pending' and total_amount = value of goods returned.
        - Recomputes status; records a partial/full return event and, when
          received == returned (> 1 unit), a 'balance_resolved' event.
        Returns the new return_id. No commit here.
        """
        if not non_empty(req.returned_by):
            raise DomainError("returned_by is required.")
        if not non_empty(req.return_reason):
            raise DomainError("A return reason is required.")
        if not non_empty(req.return_date):
            raise DomainError("A return date is required.")

        purchase = self.require_purchase(pid)
        by_id = {it.item_id: it for it in purchase.items}
        wanted = {k: float(v) for k, v in req.items.items() if float(v or 0) > 0}
        if not wanted:
            raise DomainError("No items selected for return.")

        for item_id, qty in wanted.items():
            item = by_id.get(item_id)
            if item is None:
                raise DomainError(f"Item {item_id} does not belong to purchase {pid}.")
            if item.returned_quantity + qty > item.received_quantity:
                available = item.received_quantity - item.returned_quantity
                raise DomainError(
                    f"Cannot return {qty:g} items. Only {available:g} items available for return "
                    f"({item.received_quantity:g} received, {item.returned_quantity:g} already returned)."
                )

        total_value = sum(qty * by_id[item_id].purchase_price for item_id, qty in wanted.items())
        stamp = at or now_iso()

        cur = self.conn.execute(
            """
            INSERT INTO purchase_returns (
                purchase_id, total_amount, return_date, reason, status,
                refund_status, refund_amount, processed_by, created_at
            ) VALUES (?, ?, ?, ?, 'completed', 'pending', 0, ?, ?)
            """,
            (pid, total_value, req.return_date, req.return_reason.strip(), req.returned_by, stamp),
        )
        return_id = int(cur.lastrowid)

        for item_id, qty in wanted.items():
            item = by_id[item_id]
            self.conn.execute(
                "UPDATE purchase_items SET returned_quantity=? WHERE item_id=?",
                (item.returned_quantity + qty, item_id),
            )
            self.conn.execute(
                """
                INSERT INTO purchase_return_items(return_id, item_id, quantity_returned, unit_price)
                VALUES (?, ?, ?, ?)
                """,
                (return_id, item_id, qty, item.purchase_price),
            )

        items = self.list_items(pid)
        new_status = derive_purchase_status(items)
        self._set_status(pid, new_status, stamp)

        t = quantity_totals(items)
        returned_now = sum(wanted.values())
        event_type = return_event_type(new_status)
        if event_type == "full_return":
            title = "Return Completed"
            description = f"All {t.returned:g} received items have been returned to supplier"
        else:
            title = "Partial Return Processed"
            description = f"{t.returned:g} out of {t.received:g} received items returned (+{returned_now:g} returned)"
        self.events.create_event(
            pid,
            event_type,
            title,
            description=description,
            previous_status=purchase.status,
            new_status=new_status,
            return_id=return_id,
            return_amount=total_value,
            metadata={
                "return_reason": req.return_reason,
                "return_date": req.return_date,
                "returned_items": {str(k): v for k, v in wanted.items()},
                "total_returned_in_action": returned_now,
                "total_returned_overall": t.returned,
                "total_received": t.received,
            },
            created_by=req.returned_by,
            at=stamp,
        )

        if should_mark_balance_resolved(items):
            self.events.create_event(
                pid,
                "balance_resolved",
                "Order Balance Resolved",
                description=f"All {t.received:g} received items have been returned to supplier. "
                            "Order effectively resolved with zero net received items.",
                previous_status=new_status,
                new_status=new_status,
                metadata={"total_received": t.received, "total_returned": t.returned,
                          "net_received": t.net_received, "resolution_date": req.return_date},
                created_by=req.returned_by,
                at=stamp,
            )

        _log.info(
            "return %d on %s: %g units worth %.2f, status %s -> %s",
            return_id, pid, returned_now, total_value, purchase.status, new_status,
        )
        return return_id

    # ---------- Cancel ----------
    def cancel_purchase(self, pid: str, *, created_by: Optional[str] = None, at: Optional[str] = None) -> None:
        """Only purchases with nothing received can be cancelled. No commit here."""
        purchase = self.require_purchase(pid)
        if quantity_totals(purchase.items).received > 0:
            raise DomainError("Cannot cancel a purchase with received items.")
        stamp = at or now_iso()
        self._set_status(pid, "cancelled", stamp)
        self.events.create_event(
            pid, "cancelled", "Order Cancelled",
            previous_status=purchase.status, new_status="cancelled",
            created_by=created_by, at=stamp,
        )
        _log.info("cancelled purchase %s", pid)
