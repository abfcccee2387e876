"""
Purchase lifecycle status, derived from item quantities alone.

Status is never stored as independent truth: repositories call
derive_purchase_status() after every receipt or return and persist the
result. Recomputing from the same snapshot always yields the same value.
"""
from __future__ import annotations

from typing import Iterable

from ...constants import EPSILON
from .models import Purchase, PurchaseItem, PurchaseStats, QuantityTotals


def quantity_totals(items: Iterable[PurchaseItem]) -> QuantityTotals:
    ordered = received = returned = 0.0
    for it in items:
        ordered += float(it.quantity or 0.0)
        received += float(it.received_quantity or 0.0)
        returned += float(it.returned_quantity or 0.0)
    return QuantityTotals(ordered=ordered, received=received, returned=returned)


def derive_purchase_status(items: Iterable[PurchaseItem]) -> str:
    """
    pending / partially_received / received / partially_returned / returned.

    Once everything received has been returned before receipt completed, the
    purchase drops back to 'pending'; only the timeline keeps the return.
    """
    t = quantity_totals(items)
    fully_received = t.received >= t.ordered - EPSILON

    if t.received <= EPSILON:
        return "pending"

    if t.returned <= EPSILON:
        return "received" if fully_received else "partially_received"

    if t.net_received <= EPSILON:
        return "returned" if fully_received else "pending"

    return "partially_returned" if fully_received else "partially_received"


def purchase_stats(purchases: Iterable[Purchase]) -> PurchaseStats:
    """
    Dashboard roll-up: count per status and total amount.
    Fully returned purchases are left out of the figures.
    """
    by_status: dict[str, int] = {}
    count = 0
    total = 0.0
    for p in purchases:
        if p.status == "returned":
            continue
        count += 1
        total += float(p.total_amount or 0.0)
        by_status[p.status] = by_status.get(p.status, 0) + 1
    return PurchaseStats(total_purchases=count, total_amount=total, by_status=by_status)
