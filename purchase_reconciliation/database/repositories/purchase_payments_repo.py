from __future__ import annotations
import logging
import sqlite3
from typing import Optional

from ...constants import PAYMENT_METHODS
from ...modules.purchase.models import PurchasePayment
from ...modules.purchase.reconciliation import amount_paid, calculate_payment_status
from ...modules.payments.payment_utilities.status import label
from ...utils.helpers import fmt_money, now_iso
from ...utils.validators import is_strictly_positive_number, non_empty
from .purchase_events_repo import PurchaseEventsRepo
from .purchases_repo import DomainError, PurchasesRepo

_log = logging.getLogger(__name__)


def payment_from_row(r: sqlite3.Row) -> PurchasePayment:
    return PurchasePayment(
        payment_id=int(r["payment_id"]),
        purchase_id=r["purchase_id"],
        amount=float(r["amount"]),
        payment_method=r["payment_method"],
        payment_date=r["payment_date"],
        status=r["status"],
        notes=r["notes"],
        created_at=r["created_at"],
    )


class PurchasePaymentsRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.purchases = PurchasesRepo(conn)
        self.events = PurchaseEventsRepo(conn)

    def list_payments(self, purchase_id: str) -> list[PurchasePayment]:
        rows = self.conn.execute(
            """
            SELECT * FROM purchase_payments
            WHERE purchase_id = ?
            ORDER BY payment_date DESC, created_at DESC, payment_id DESC
            """,
            (purchase_id,),
        ).fetchall()
        return [payment_from_row(r) for r in rows]

    def get_payment(self, payment_id: int) -> PurchasePayment | None:
        row = self.conn.execute(
            "SELECT * FROM purchase_payments WHERE payment_id = ?", (payment_id,)
        ).fetchone()
        return payment_from_row(row) if row else None

    def amount_paid(self, purchase_id: str) -> float:
        return amount_paid(self.list_payments(purchase_id))

    def record_payment(
        self,
        purchase_id: str,
        *,
        amount: float,
        method: str,
        date: str,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        at: Optional[str] = None,
    ) -> int:
        """
        Insert one active row into purchase_payments and a 'payment_made' event.
        Overpayment is allowed; it surfaces as 'overpaid' in the status.
        No commit here; caller controls the transaction boundary.
        """
        if not is_strictly_positive_number(amount):
            raise DomainError("Payment amount must be greater than zero.")
        if method not in PAYMENT_METHODS:
            raise DomainError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
        if not non_empty(date):
            raise DomainError("A payment date is required.")
        purchase = self.purchases.require_purchase(purchase_id)

        stamp = at or now_iso()
        cur = self.conn.execute(
            """
            INSERT INTO purchase_payments (
                purchase_id, amount, payment_method, payment_date, status,
                notes, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, 'active', ?, ?, ?, ?)
            """,
            (purchase_id, float(amount), method, date, notes, created_by, stamp, stamp),
        )
        payment_id = int(cur.lastrowid)

        status = calculate_payment_status(purchase, self.amount_paid(purchase_id)).status
        self.events.create_event(
            purchase_id,
            "payment_made",
            "Payment Made",
            description=f"Payment of {fmt_money(amount)} via {method.replace('_', ' ')}. "
                        f"Purchase is now {label(status).lower()}.",
            new_status=status,
            payment_id=payment_id,
            payment_amount=float(amount),
            created_by=created_by,
            at=stamp,
        )
        _log.info("payment %d on %s: %.2f via %s (%s)", payment_id, purchase_id, float(amount), method, status)
        return payment_id

    def void_payment(
        self,
        payment_id: int,
        reason: Optional[str] = None,
        *,
        created_by: Optional[str] = None,
        at: Optional[str] = None,
    ) -> PurchasePayment:
        """
        Mark a payment void (kept for audit, excluded from sums) and record a
        'payment_voided' event. No commit here.
        """
        payment = self.get_payment(payment_id)
        if payment is None:
            raise DomainError("Payment not found")
        if payment.status == "void":
            raise DomainError("Payment is already voided")

        void_note = f"VOIDED: {reason}" if reason else "VOIDED"
        notes = f"{payment.notes} | {void_note}" if payment.notes else void_note
        stamp = at or now_iso()
        self.conn.execute(
            "UPDATE purchase_payments SET status='void', notes=?, updated_at=? WHERE payment_id=?",
            (notes, stamp, payment_id),
        )
        self.events.create_event(
            payment.purchase_id,
            "payment_voided",
            "Payment Voided",
            description=f"Payment of {fmt_money(payment.amount)} was voided."
                        + (f" Reason: {reason}" if reason else ""),
            payment_id=payment_id,
            payment_amount=payment.amount,
            created_by=created_by,
            at=stamp,
        )
        _log.info("voided payment %d on %s", payment_id, payment.purchase_id)
        return self.get_payment(payment_id)  # type: ignore[return-value]
