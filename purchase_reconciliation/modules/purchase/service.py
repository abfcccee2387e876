"""
modules/purchase/service.py

Glue between the sqlite repositories and the pure engine: fetch one
consistent snapshot, then compute. Nothing here writes except
recompute_all_statuses().
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import sqlite3
from typing import Tuple

from ...database.repositories import (
    PurchaseEventsRepo,
    PurchasePaymentsRepo,
    PurchaseReturnsRepo,
    PurchasesRepo,
)
from .models import (
    CompletePaymentStatus,
    NetPaymentAmount,
    Purchase,
    PurchaseEvent,
    PurchasePayment,
    PurchaseReturn,
)
from .reconciliation import (
    amount_paid,
    calculate_complete_payment_status,
    calculate_net_payment_amount,
)
from .status import derive_purchase_status

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseSnapshot:
    purchase: Purchase
    payments: Tuple[PurchasePayment, ...]
    returns: Tuple[PurchaseReturn, ...]
    timeline: Tuple[PurchaseEvent, ...]

    @property
    def amount_paid(self) -> float:
        return amount_paid(self.payments)


@dataclass(frozen=True)
class Reconciliation:
    snapshot: PurchaseSnapshot
    amounts: NetPaymentAmount
    derived_status: str
    payment: CompletePaymentStatus

    @property
    def status_drift(self) -> bool:
        """Stored status differs from what the item quantities say."""
        stored = self.snapshot.purchase.status
        return stored != "cancelled" and stored != self.derived_status


class ReconciliationService:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.purchases = PurchasesRepo(conn)
        self.payments = PurchasePaymentsRepo(conn)
        self.returns = PurchaseReturnsRepo(conn)
        self.events = PurchaseEventsRepo(conn)

    def snapshot(self, purchase_id: str) -> PurchaseSnapshot:
        purchase = self.purchases.require_purchase(purchase_id)
        return PurchaseSnapshot(
            purchase=purchase,
            payments=tuple(self.payments.list_payments(purchase_id)),
            returns=tuple(self.returns.list_returns(purchase_id)),
            timeline=tuple(self.events.timeline(purchase_id)),
        )

    def reconcile(self, purchase_id: str) -> Reconciliation:
        snap = self.snapshot(purchase_id)
        result = calculate_complete_payment_status(
            snap.purchase, snap.amount_paid, snap.returns, snap.timeline
        )
        return Reconciliation(
            snapshot=snap,
            amounts=calculate_net_payment_amount(snap.purchase),
            derived_status=derive_purchase_status(snap.purchase.items),
            payment=result,
        )

    def recompute_all_statuses(self) -> dict[str, tuple[str, str]]:
        """
        Re-derive every purchase status from its items and store changes.
        Returns {purchase_id: (old, new)} for the purchases that changed.
        Commits on success.
        """
        changed: dict[str, tuple[str, str]] = {}
        for p in self.purchases.list_purchases():
            new = self.purchases.recompute_status(p.purchase_id)
            if new != p.status:
                changed[p.purchase_id] = (p.status, new)
        self.conn.commit()
        _log.info("recomputed statuses: %d changed", len(changed))
        return changed
