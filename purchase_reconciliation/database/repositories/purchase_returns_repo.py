from __future__ import annotations
from datetime import date, datetime, timezone
import logging
import sqlite3
from typing import Optional

from ...modules.purchase.models import PurchaseReturn, RefundTransaction
from ...modules.payments.payment_utilities.refunds import (
    RefundAllocation,
    allocate_refund,
    is_refund_eligible,
    refund_status_from_transactions,
)
from ...utils.helpers import now_iso, parse_timestamp, utc_today
from .purchase_payments_repo import PurchasePaymentsRepo
from .purchases_repo import DomainError, PurchasesRepo

_log = logging.getLogger(__name__)


def refund_txn_from_row(r: sqlite3.Row) -> RefundTransaction:
    return RefundTransaction(
        transaction_id=int(r["transaction_id"]),
        return_id=int(r["return_id"]),
        payment_id=int(r["payment_id"]),
        refund_amount=float(r["refund_amount"]),
        refund_method=r["refund_method"],
        status=r["status"],
        payment_date=r["payment_date"] if "payment_date" in r.keys() else None,
    )


def return_from_row(r: sqlite3.Row, txns=()) -> PurchaseReturn:
    return PurchaseReturn(
        return_id=int(r["return_id"]),
        purchase_id=r["purchase_id"],
        total_amount=float(r["total_amount"]),
        refund_status=r["refund_status"],
        refund_amount=float(r["refund_amount"] or 0.0),
        return_date=r["return_date"],
        reason=r["reason"],
        refund_transactions=tuple(txns),
    )


class PurchaseReturnsRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.purchases = PurchasesRepo(conn)
        self.payments = PurchasePaymentsRepo(conn)

    # ---------- Query ----------
    def list_refund_transactions(self, return_id: int) -> list[RefundTransaction]:
        rows = self.conn.execute(
            """
            SELECT rt.*, pp.payment_date
            FROM refund_transactions rt
            JOIN purchase_payments pp ON pp.payment_id = rt.payment_id
            WHERE rt.return_id = ?
            ORDER BY rt.transaction_id
            """,
            (return_id,),
        ).fetchall()
        return [refund_txn_from_row(r) for r in rows]

    def get_return(self, return_id: int) -> PurchaseReturn | None:
        row = self.conn.execute(
            "SELECT * FROM purchase_returns WHERE return_id = ?", (return_id,)
        ).fetchone()
        if row is None:
            return None
        return return_from_row(row, self.list_refund_transactions(return_id))

    def list_returns(self, purchase_id: str) -> list[PurchaseReturn]:
        rows = self.conn.execute(
            "SELECT * FROM purchase_returns WHERE purchase_id = ? ORDER BY created_at, return_id",
            (purchase_id,),
        ).fetchall()
        return [return_from_row(r, self.list_refund_transactions(int(r["return_id"]))) for r in rows]

    def _purchase_refund_transactions(self, purchase_id: str) -> list[RefundTransaction]:
        rows = self.conn.execute(
            """
            SELECT rt.*, pp.payment_date
            FROM refund_transactions rt
            JOIN purchase_returns pr ON pr.return_id = rt.return_id
            JOIN purchase_payments pp ON pp.payment_id = rt.payment_id
            WHERE pr.purchase_id = ?
            """,
            (purchase_id,),
        ).fetchall()
        return [refund_txn_from_row(r) for r in rows]

    # ---------- Eligibility ----------
    def check_refund_eligibility(self, purchase_id: str, on_date: Optional[date] = None) -> dict:
        purchase = self.purchases.require_purchase(purchase_id)
        started = parse_timestamp(purchase.created_at)
        today = on_date or utc_today()
        if isinstance(today, datetime):
            today = today.date()
        days = (today - started.astimezone(timezone.utc).date()).days if started else None
        eligible = is_refund_eligible(purchase.created_at, today)
        return {
            "eligible": eligible,
            "reason": None if eligible else "Refund window has closed",
            "days_since_purchase": days,
        }

    # ---------- Refund processing ----------
    def propose_refund(self, return_id: int) -> RefundAllocation:
        """FIFO split of the return's value over the purchase's active payments. Read-only."""
        ret = self.get_return(return_id)
        if ret is None:
            raise DomainError(f"Return not found: {return_id}")
        already = sum(
            t.refund_amount for t in ret.refund_transactions if t.status in ("completed", "processing", "pending")
        )
        return allocate_refund(
            ret.total_amount - already,
            self.payments.list_payments(ret.purchase_id),
            self._purchase_refund_transactions(ret.purchase_id),
            return_id=return_id,
        )

    def create_refund_transactions(self, return_id: int, *, at: Optional[str] = None) -> list[int]:
        """
        Persist the proposed split as 'pending' refund transactions and roll
        the return's refund_status up. No commit here.
        """
        ret = self.get_return(return_id)
        if ret is None:
            raise DomainError(f"Return not found: {return_id}")
        if ret.refund_status in ("completed", "cancelled"):
            raise DomainError(f"Refund for return {return_id} is already {ret.refund_status}.")

        allocation = self.propose_refund(return_id)
        if not allocation.allocations:
            raise DomainError("No active payments available to refund against.")

        stamp = at or now_iso()
        ids: list[int] = []
        for t in allocation.allocations:
            cur = self.conn.execute(
                """
                INSERT INTO refund_transactions (
                    return_id, payment_id, refund_amount, refund_method, status, created_at
                ) VALUES (?, ?, ?, ?, 'pending', ?)
                """,
                (return_id, t.payment_id, t.refund_amount, t.refund_method, stamp),
            )
            ids.append(int(cur.lastrowid))

        if allocation.unallocated_amount > 0:
            _log.warning(
                "return %d: %.2f of the refund could not be allocated to any payment",
                return_id, allocation.unallocated_amount,
            )
        self._roll_up(return_id)
        _log.info("return %d: %d refund transaction(s) totalling %.2f", return_id, len(ids), allocation.total_amount)
        return ids

    def _get_txn(self, transaction_id: int) -> sqlite3.Row:
        row = self.conn.execute(
            "SELECT * FROM refund_transactions WHERE transaction_id = ?", (transaction_id,)
        ).fetchone()
        if row is None:
            raise DomainError(f"Refund transaction not found: {transaction_id}")
        return row

    def complete_refund_transaction(self, transaction_id: int, *, at: Optional[str] = None) -> str:
        row = self._get_txn(transaction_id)
        if row["status"] in ("completed", "cancelled"):
            raise DomainError(f"Refund transaction {transaction_id} is already {row['status']}.")
        self.conn.execute(
            "UPDATE refund_transactions SET status='completed', processed_at=? WHERE transaction_id=?",
            (at or now_iso(), transaction_id),
        )
        return self._roll_up(int(row["return_id"]))

    def fail_refund_transaction(self, transaction_id: int, reason: str, *, at: Optional[str] = None) -> str:
        row = self._get_txn(transaction_id)
        if row["status"] in ("completed", "cancelled"):
            raise DomainError(f"Refund transaction {transaction_id} is already {row['status']}.")
        self.conn.execute(
            """
            UPDATE refund_transactions
            SET status='failed', failure_reason=?, processed_at=?
            WHERE transaction_id=?
            """,
            (reason, at or now_iso(), transaction_id),
        )
        _log.warning("refund transaction %d failed: %s", transaction_id, reason)
        return self._roll_up(int(row["return_id"]))

    def _roll_up(self, return_id: int) -> str:
        """Return-level refund_status and refunded amount from its transactions."""
        txns = self.list_refund_transactions(return_id)
        status = refund_status_from_transactions(txns)
        refunded = sum(t.refund_amount for t in txns if t.status == "completed")
        self.conn.execute(
            "UPDATE purchase_returns SET refund_status=?, refund_amount=? WHERE return_id=?",
            (status, refunded, return_id),
        )
        return status
