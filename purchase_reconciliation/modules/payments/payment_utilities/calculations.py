"""
payment_utilities/calculations.py

Pure helpers for payment status math. Shared by the purchase reconciliation
engine and by repositories that describe a payment's effect on a purchase.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs in the presentation layer.
"""
from __future__ import annotations

import math
from typing import Iterable

from ....constants import EPSILON
from ...purchase.models import PaymentStatus

__all__ = [
    "clamp_non_negative",
    "money_eq",
    "classify_payment",
    "progress_percentage",
    "status_from_paid",
    "sum_active_payments",
]


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0. Payables and refunds never go below zero."""
    return x if x > 0.0 else 0.0


def money_eq(a: float, b: float) -> bool:
    """Equality within EPSILON, so 0.1 + 0.2 matches 0.3."""
    return abs(a - b) <= EPSILON


# -----------------------------
# Status classification
# -----------------------------

def status_from_paid(base: float, paid: float) -> str:
    """
    Four-way threshold helper:
      - 'unpaid'   if paid == 0
      - 'partial'  if 0 < paid < base
      - 'paid'     if paid == base
      - 'overpaid' if paid > base

    A zero payment is 'unpaid' even against a zero base. Negative amounts are
    not expected; they fall through the same comparisons without raising.
    """
    if money_eq(paid, 0.0):
        return "unpaid"
    if paid < base and not money_eq(paid, base):
        return "partial"
    if money_eq(paid, base):
        return "paid"
    return "overpaid"


def progress_percentage(base: float, paid: float, status: str) -> int:
    """
    paid / base * 100 rounded half up, pinned to 0 for unpaid and 100 for paid.
    A positive payment against a zero base reports 100.
    """
    if status == "unpaid":
        return 0
    if status == "paid":
        return 100
    if base <= 0.0:
        return 100
    return int(math.floor(paid / base * 100 + 0.5))


def classify_payment(base: float, paid: float) -> PaymentStatus:
    """
    Classify `paid` against `base`; returns status with remaining/overpaid amounts.
    """
    status = status_from_paid(base, paid)
    if status == "unpaid":
        return PaymentStatus(status, clamp_non_negative(base), 0.0)
    if status == "partial":
        return PaymentStatus(status, base - paid, 0.0)
    if status == "paid":
        return PaymentStatus(status, 0.0, 0.0)
    return PaymentStatus(status, 0.0, paid - base)


# -----------------------------
# Roll-ups
# -----------------------------

def sum_active_payments(payments: Iterable) -> float:
    """Sum of payment amounts, skipping voided rows (kept for audit only)."""
    total = 0.0
    for p in payments:
        if getattr(p, "status", "active") == "void":
            continue
        total += float(p.amount or 0.0)
    return total
