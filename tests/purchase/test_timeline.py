from purchase_reconciliation.modules.purchase.models import PurchaseEvent, PurchaseItem
from purchase_reconciliation.modules.purchase.timeline import (
    first_payment_event,
    last_return_event,
    payment_made_after_returns,
    receipt_event_type,
    return_event_type,
    should_mark_balance_resolved,
    sort_events,
)


def ev(event_type, at):
    return PurchaseEvent(event_type=event_type, created_at=at)


def test_sort_events_oldest_first():
    timeline = [
        ev("payment_made", "2025-01-10T12:00:00+00:00"),
        ev("order_placed", "2025-01-01T09:00:00+00:00"),
        ev("full_receipt", "2025-01-03T09:00:00Z"),
    ]
    assert [e.event_type for e in sort_events(timeline)] == [
        "order_placed", "full_receipt", "payment_made",
    ]


def test_sort_handles_mixed_offsets():
    # 10:00+02:00 is 08:00 UTC, before 09:00 UTC
    a = ev("partial_return", "2025-01-05T10:00:00+02:00")
    b = ev("payment_made", "2025-01-05T09:00:00+00:00")
    assert sort_events([b, a]) == [a, b]


def test_last_return_and_first_payment():
    timeline = [
        ev("payment_made", "2025-01-02T00:00:00"),
        ev("partial_return", "2025-01-03T00:00:00"),
        ev("payment_made", "2025-01-04T00:00:00"),
        ev("full_return", "2025-01-05T00:00:00"),
    ]
    assert last_return_event(timeline).event_type == "full_return"
    assert first_payment_event(timeline).created_at == "2025-01-02T00:00:00"


def test_payment_after_returns_uses_first_payment_and_last_return():
    timeline = [
        ev("partial_return", "2025-01-03T00:00:00"),
        ev("payment_made", "2025-01-04T00:00:00"),
    ]
    assert payment_made_after_returns(timeline) is True

    # an earlier payment means the first payment preceded the last return
    timeline.append(ev("payment_made", "2025-01-01T00:00:00"))
    assert payment_made_after_returns(timeline) is False


def test_payment_after_returns_false_when_either_event_missing():
    assert payment_made_after_returns([ev("payment_made", "2025-01-04")]) is False
    assert payment_made_after_returns([ev("full_return", "2025-01-04")]) is False
    assert payment_made_after_returns([]) is False
    assert payment_made_after_returns(None) is False


def test_payment_after_returns_requires_returns_by_value():
    timeline = [ev("partial_return", "2025-01-03"), ev("payment_made", "2025-01-04")]
    assert payment_made_after_returns(timeline, has_returns=False) is False


def test_same_instant_is_not_after():
    timeline = [ev("partial_return", "2025-01-03T10:00:00"), ev("payment_made", "2025-01-03T10:00:00")]
    assert payment_made_after_returns(timeline) is False


def test_voided_payment_event_is_not_a_payment():
    timeline = [ev("full_return", "2025-01-03"), ev("payment_voided", "2025-01-04")]
    assert payment_made_after_returns(timeline) is False


def test_receipt_and_return_event_types():
    assert receipt_event_type([PurchaseItem(10, 10)]) == "full_receipt"
    assert receipt_event_type([PurchaseItem(10, 4)]) == "partial_receipt"
    assert return_event_type("returned") == "full_return"
    assert return_event_type("partially_returned") == "partial_return"
    assert return_event_type("pending") == "partial_return"


def test_balance_resolved_needs_more_than_one_unit():
    assert should_mark_balance_resolved([PurchaseItem(10, 4, 4)]) is True
    assert should_mark_balance_resolved([PurchaseItem(1, 1, 1)]) is False
    assert should_mark_balance_resolved([PurchaseItem(10, 4, 3)]) is False
