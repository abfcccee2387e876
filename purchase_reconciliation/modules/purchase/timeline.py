"""
Chronology helpers over the purchase event timeline.

The timeline is append-only; these helpers only read it. The key question
answered here is whether the first payment was recorded after the last
return, in which case staff already reduced the payment for the return.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ...constants import EPSILON, RETURN_EVENT_TYPES
from ...utils.helpers import parse_timestamp
from .models import PurchaseEvent, PurchaseItem
from .status import quantity_totals

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _event_time(event: PurchaseEvent) -> datetime:
    # Unparseable timestamps sort first rather than raising.
    return parse_timestamp(event.created_at) or _EPOCH


def sort_events(timeline: Iterable[PurchaseEvent]) -> list[PurchaseEvent]:
    """Oldest first; ties keep their original order."""
    return sorted(timeline or (), key=_event_time)


def last_return_event(timeline: Iterable[PurchaseEvent]) -> Optional[PurchaseEvent]:
    returns = [e for e in sort_events(timeline) if e.event_type in RETURN_EVENT_TYPES]
    return returns[-1] if returns else None


def first_payment_event(timeline: Iterable[PurchaseEvent]) -> Optional[PurchaseEvent]:
    for e in sort_events(timeline):
        if e.event_type == "payment_made":
            return e
    return None


def payment_made_after_returns(
    timeline: Optional[Sequence[PurchaseEvent]],
    has_returns: bool = True,
) -> bool:
    """
    True iff the earliest payment_made event is strictly later than the
    latest partial_return/full_return event. False when either is missing,
    the timeline is empty, or nothing has been returned by value.
    """
    if not timeline or not has_returns:
        return False
    last_return = last_return_event(timeline)
    first_payment = first_payment_event(timeline)
    if last_return is None or first_payment is None:
        return False
    return _event_time(first_payment) > _event_time(last_return)


# -----------------------------
# Event classification for writers
# -----------------------------

def receipt_event_type(items: Iterable[PurchaseItem]) -> str:
    t = quantity_totals(items)
    if t.ordered > 0 and t.received >= t.ordered - EPSILON:
        return "full_receipt"
    return "partial_receipt"


def return_event_type(new_status: str) -> str:
    return "full_return" if new_status == "returned" else "partial_return"


def should_mark_balance_resolved(items: Iterable[PurchaseItem]) -> bool:
    """
    Received and returned quantities became equal with more than one unit
    involved. A single unit sent back is a plain return, not a resolution.
    """
    t = quantity_totals(items)
    return t.received > 1 and abs(t.received - t.returned) <= EPSILON
