"""
modules/purchase/reconciliation.py

Purchase / payment / return reconciliation.

Total functions over snapshots: nothing here raises on odd data or touches
storage. Amounts are clamped instead (net amount and refund due never go
below zero); validating quantities is the repositories' job.

Typical call:
    result = calculate_complete_payment_status(purchase, amount_paid(payments),
                                               returns, timeline)
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ...constants import EPSILON, OPEN_REFUND_STATUSES
from ..payments.payment_utilities.calculations import (
    clamp_non_negative,
    classify_payment,
    progress_percentage,
    sum_active_payments,
)
from ..payments.payment_utilities.status import display_for
from .models import (
    CompletePaymentStatus,
    NetPaymentAmount,
    NetPaymentStatus,
    OriginalPaymentStatus,
    PaymentStatus,
    Purchase,
    PurchaseEvent,
    PurchasePayment,
    PurchaseReturn,
    RefundDue,
)
from .timeline import payment_made_after_returns

__all__ = [
    "amount_paid",
    "calculate_net_payment_amount",
    "calculate_payment_status",
    "calculate_original_payment_status",
    "calculate_net_payment_status",
    "calculate_refund_due",
    "calculate_complete_payment_status",
]


def amount_paid(payments: Iterable[PurchasePayment]) -> float:
    """Total of active payments; voided payments stay on file but count for nothing."""
    return sum_active_payments(payments)


def calculate_net_payment_amount(purchase: Purchase) -> NetPaymentAmount:
    original = float(purchase.total_amount or 0.0)
    returned_value = sum(
        float(it.returned_quantity or 0.0) * float(it.purchase_price or 0.0)
        for it in purchase.items
    )
    return NetPaymentAmount(
        original_amount=original,
        return_amount=returned_value,
        net_amount=clamp_non_negative(original - returned_value),
    )


def calculate_payment_status(purchase: Purchase, amount_paid: float) -> PaymentStatus:
    """Payment status against the return-adjusted net amount only."""
    net = calculate_net_payment_amount(purchase).net_amount
    return classify_payment(net, float(amount_paid or 0.0))


def calculate_original_payment_status(purchase: Purchase, amount_paid: float) -> OriginalPaymentStatus:
    """Whether the original order total has been paid, ignoring returns."""
    original = float(purchase.total_amount or 0.0)
    paid = float(amount_paid or 0.0)
    base = classify_payment(original, paid)
    return OriginalPaymentStatus(
        status=base.status,
        remaining_amount=base.remaining_amount,
        overpaid_amount=base.overpaid_amount,
        progress_percentage=progress_percentage(original, paid, base.status),
    )


def calculate_net_payment_status(
    purchase: Purchase,
    amount_paid: float,
    timeline: Optional[Sequence[PurchaseEvent]] = None,
) -> NetPaymentStatus:
    """
    Chronology-aware payment status.

    The base is the net amount when the first payment came after the last
    return, otherwise the original amount.
    """
    amounts = calculate_net_payment_amount(purchase)
    paid = float(amount_paid or 0.0)
    after = payment_made_after_returns(timeline, has_returns=amounts.return_amount > EPSILON)
    base_amount = amounts.net_amount if after else amounts.original_amount

    base = classify_payment(base_amount, paid)
    return NetPaymentStatus(
        status=base.status,
        remaining_amount=base.remaining_amount,
        overpaid_amount=base.overpaid_amount,
        progress_percentage=progress_percentage(base_amount, paid, base.status),
        base_amount=base_amount,
        payment_made_after_returns=after,
    )


def calculate_refund_due(
    purchase: Purchase,
    amount_paid: float,
    returns: Optional[Iterable[PurchaseReturn]] = None,
    timeline: Optional[Sequence[PurchaseEvent]] = None,
) -> RefundDue:
    """
    Refund still owed for returned goods that were already paid for.

    Works on aggregates: which payment funds which refund is the refund
    allocator's concern, not this one.
    """
    return_amount = calculate_net_payment_amount(purchase).return_amount
    has_returns = return_amount > EPSILON
    paid = float(amount_paid or 0.0)

    refunded = 0.0
    pending = 0.0
    for r in returns or ():
        if r.refund_status == "completed":
            refunded += float(r.refund_amount or 0.0)
        elif r.refund_status in OPEN_REFUND_STATUSES:
            pending += float(r.total_amount or 0.0)

    after = payment_made_after_returns(timeline, has_returns=has_returns)

    refund_due = 0.0
    if has_returns and paid > EPSILON and not after:
        refund_due = clamp_non_negative(min(return_amount, paid) - refunded)
        if refund_due <= EPSILON:
            refund_due = 0.0

    return RefundDue(
        refund_due=refund_due,
        return_amount=return_amount,
        has_returns=has_returns,
        refunded_amount=refunded,
        pending_refund_amount=pending,
        payment_made_after_returns=after,
    )


def calculate_complete_payment_status(
    purchase: Purchase,
    amount_paid: float,
    returns: Optional[Iterable[PurchaseReturn]] = None,
    timeline: Optional[Sequence[PurchaseEvent]] = None,
) -> CompletePaymentStatus:
    returns = list(returns or ())
    payment = calculate_net_payment_status(purchase, amount_paid, timeline)
    refund = calculate_refund_due(purchase, amount_paid, returns, timeline)

    display_status, color = display_for(
        payment.status,
        refund_due=refund.refund_due > EPSILON,
        refunded=refund.refunded_amount > EPSILON,
        payment_made_after_returns=refund.payment_made_after_returns,
    )
    show_refund = (
        (refund.refund_due > EPSILON or refund.refunded_amount > EPSILON)
        and not refund.payment_made_after_returns
    )

    return CompletePaymentStatus(
        payment_status=payment.status,
        remaining_amount=payment.remaining_amount,
        overpaid_amount=payment.overpaid_amount,
        progress_percentage=payment.progress_percentage,
        refund_due=refund.refund_due,
        return_amount=refund.return_amount,
        has_returns=refund.has_returns,
        refunded_amount=refund.refunded_amount,
        pending_refund_amount=refund.pending_refund_amount,
        payment_made_after_returns=refund.payment_made_after_returns,
        display_status=display_status,
        display_badge_color=color,
        show_refund_section=show_refund,
    )
