# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from purchase_reconciliation.database.repositories import (
        PurchasesRepo, PurchaseHeader, PurchaseLine, ReturnRequest, DomainError,
        PurchasePaymentsRepo, PurchaseReturnsRepo, PurchaseEventsRepo,
    )

Repositories validate at the boundary (DomainError) and hand the engine
immutable snapshots. None of them commit; the caller owns the transaction.
"""

# ---------------- Purchases ----------------
from .purchases_repo import (
    DomainError,
    PurchaseHeader,
    PurchaseLine,
    PurchasesRepo,
    ReturnRequest,
)

# ---------------- Payments -----------------
from .purchase_payments_repo import PurchasePaymentsRepo

# ----------- Returns / refunds -------------
from .purchase_returns_repo import PurchaseReturnsRepo

# ---------------- Timeline -----------------
from .purchase_events_repo import PurchaseEventsRepo

__all__ = [
    "DomainError",
    "PurchaseHeader",
    "PurchaseLine",
    "PurchasesRepo",
    "ReturnRequest",
    "PurchasePaymentsRepo",
    "PurchaseReturnsRepo",
    "PurchaseEventsRepo",
]
