"""
payment_utilities/refunds.py

Splitting a return's refund across the payments that funded the purchase.

Payments are drawn oldest first (FIFO). Each payment can give back at most
its amount minus what completed or in-flight refund transactions already
took from it. Whatever cannot be covered is reported as unallocated rather
than raised.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Tuple

from ....constants import EPSILON, REFUND_ELIGIBILITY_DAYS
from ....utils.helpers import parse_timestamp, utc_today
from ...purchase.models import PurchasePayment, RefundTransaction
from .calculations import clamp_non_negative

__all__ = [
    "RefundAllocation",
    "available_refund_amount",
    "allocate_refund",
    "is_refund_eligible",
    "refund_status_from_transactions",
]

# Refund transactions in these states have claimed part of a payment.
_CLAIMING_STATES = ("completed", "processing")


@dataclass(frozen=True)
class RefundAllocation:
    allocations: Tuple[RefundTransaction, ...]
    total_amount: float
    unallocated_amount: float


def available_refund_amount(
    payment: PurchasePayment,
    existing_refunds: Iterable[RefundTransaction] = (),
) -> float:
    """Refundable balance left on one payment; 0 for voided payments."""
    if not payment.is_active:
        return 0.0
    claimed = sum(
        float(t.refund_amount or 0.0)
        for t in existing_refunds
        if t.payment_id == payment.payment_id and t.status in _CLAIMING_STATES
    )
    return clamp_non_negative(float(payment.amount or 0.0) - claimed)


def _payment_sort_key(p: PurchasePayment):
    when = parse_timestamp(p.payment_date) or parse_timestamp(p.created_at)
    return (when is None, when.timestamp() if when else 0.0, str(p.payment_id))


def allocate_refund(
    refund_amount: float,
    payments: Iterable[PurchasePayment],
    existing_refunds: Iterable[RefundTransaction] = (),
    *,
    return_id=None,
) -> RefundAllocation:
    """
    Proposed (status 'pending') refund transactions covering `refund_amount`.
    Nothing is persisted here.
    """
    existing = list(existing_refunds)
    remaining = clamp_non_negative(float(refund_amount or 0.0))
    out: list[RefundTransaction] = []

    for p in sorted(payments, key=_payment_sort_key):
        if remaining <= EPSILON:
            break
        available = available_refund_amount(p, existing)
        if available <= EPSILON:
            continue
        take = min(available, remaining)
        out.append(
            RefundTransaction(
                transaction_id=None,
                return_id=return_id,
                payment_id=p.payment_id,
                refund_amount=take,
                refund_method=p.payment_method,
                status="pending",
                payment_date=p.payment_date,
            )
        )
        remaining -= take

    total = sum(t.refund_amount for t in out)
    return RefundAllocation(
        allocations=tuple(out),
        total_amount=total,
        unallocated_amount=clamp_non_negative(remaining),
    )


def is_refund_eligible(
    purchase_date,
    on_date: Optional[date] = None,
    window_days: int = REFUND_ELIGIBILITY_DAYS,
) -> bool:
    """Within `window_days` of the purchase date (inclusive). Unknown dates are not eligible."""
    start = parse_timestamp(purchase_date)
    if start is None:
        return False
    today = on_date or utc_today()
    if isinstance(today, datetime):
        today = today.date()
    return (today - start.astimezone(timezone.utc).date()).days <= window_days


def refund_status_from_transactions(transactions: Iterable[RefundTransaction]) -> str:
    """
    Return-level refund status from its transactions:
      - no live transactions            -> 'pending'
      - all live ones completed         -> 'completed'
      - any processing, or some done    -> 'processing'
      - all live ones failed            -> 'failed'
    Cancelled transactions are ignored; all-cancelled means 'cancelled'.
    """
    txns = list(transactions)
    if not txns:
        return "pending"
    live = [t for t in txns if t.status != "cancelled"]
    if not live:
        return "cancelled"
    states = {t.status for t in live}
    if states == {"completed"}:
        return "completed"
    if states == {"failed"}:
        return "failed"
    if "processing" in states or "completed" in states:
        return "processing"
    return "pending"
