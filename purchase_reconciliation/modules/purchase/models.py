"""
modules/purchase/models.py

Immutable value types for purchase reconciliation.

Records are snapshots: repositories build them from rows (validating the
shape there), the engine only reads them. Result types mirror the payloads
the UI layer renders.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


# -----------------------------
# Records
# -----------------------------

@dataclass(frozen=True)
class PurchaseItem:
    quantity: float
    received_quantity: float = 0.0
    returned_quantity: float = 0.0
    purchase_price: float = 0.0
    item_id: Optional[int] = None
    item_name: Optional[str] = None

    @property
    def total(self) -> float:
        return self.quantity * self.purchase_price


@dataclass(frozen=True)
class Purchase:
    purchase_id: str
    total_amount: float
    items: Tuple[PurchaseItem, ...] = ()
    status: str = "pending"
    created_by: Optional[str] = None
    warehouse_id: Optional[str] = None
    supplier_name: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class PurchasePayment:
    payment_id: int | str | None
    purchase_id: str
    amount: float
    payment_method: str
    payment_date: str
    status: str = "active"
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status != "void"


@dataclass(frozen=True)
class RefundTransaction:
    transaction_id: int | str | None
    return_id: int | str | None
    payment_id: int | str | None
    refund_amount: float
    refund_method: str
    status: str = "pending"
    payment_date: Optional[str] = None


@dataclass(frozen=True)
class PurchaseReturn:
    return_id: int | str | None
    purchase_id: str
    total_amount: float
    refund_status: str = "pending"
    refund_amount: float = 0.0
    return_date: Optional[str] = None
    reason: Optional[str] = None
    refund_transactions: Tuple[RefundTransaction, ...] = ()


@dataclass(frozen=True)
class PurchaseEvent:
    event_type: str
    created_at: str
    purchase_id: Optional[str] = None
    event_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    payment_id: int | str | None = None
    return_amount: Optional[float] = None
    payment_amount: Optional[float] = None


# -----------------------------
# Results
# -----------------------------

@dataclass(frozen=True)
class QuantityTotals:
    ordered: float
    received: float
    returned: float

    @property
    def net_received(self) -> float:
        return self.received - self.returned


@dataclass(frozen=True)
class NetPaymentAmount:
    original_amount: float
    return_amount: float
    net_amount: float


@dataclass(frozen=True)
class PaymentStatus:
    status: str
    remaining_amount: float
    overpaid_amount: float


@dataclass(frozen=True)
class OriginalPaymentStatus(PaymentStatus):
    progress_percentage: int = 0


@dataclass(frozen=True)
class NetPaymentStatus(PaymentStatus):
    progress_percentage: int = 0
    base_amount: float = 0.0
    payment_made_after_returns: bool = False


@dataclass(frozen=True)
class RefundDue:
    refund_due: float
    return_amount: float
    has_returns: bool
    refunded_amount: float
    pending_refund_amount: float
    payment_made_after_returns: bool


@dataclass(frozen=True)
class CompletePaymentStatus:
    payment_status: str
    remaining_amount: float
    overpaid_amount: float
    progress_percentage: int
    refund_due: float
    return_amount: float
    has_returns: bool
    refunded_amount: float
    pending_refund_amount: float
    payment_made_after_returns: bool
    display_status: str
    display_badge_color: str
    show_refund_section: bool


@dataclass(frozen=True)
class PurchaseStats:
    total_purchases: int = 0
    total_amount: float = 0.0
    by_status: dict = field(default_factory=dict)

    def count(self, status: str) -> int:
        return int(self.by_status.get(status, 0))
