import pytest

from purchase_reconciliation.modules.purchase.models import Purchase, PurchaseItem
from purchase_reconciliation.modules.purchase.status import (
    derive_purchase_status,
    purchase_stats,
    quantity_totals,
)


def items(*rows):
    """rows of (ordered, received, returned)"""
    return [PurchaseItem(quantity=q, received_quantity=r, returned_quantity=x, purchase_price=5.0) for q, r, x in rows]


@pytest.mark.parametrize(
    "rows, expected",
    [
        ([(10, 0, 0)], "pending"),
        ([(10, 4, 0)], "partially_received"),
        ([(10, 10, 0)], "received"),
        ([(10, 10, 10)], "returned"),
        ([(10, 4, 4)], "pending"),
        ([(10, 10, 4)], "partially_returned"),
        ([(10, 6, 2)], "partially_received"),
    ],
)
def test_decision_table(rows, expected):
    assert derive_purchase_status(items(*rows)) == expected


def test_totals_across_lines():
    t = quantity_totals(items((10, 10, 2), (5, 3, 1)))
    assert (t.ordered, t.received, t.returned) == (15, 13, 3)
    assert t.net_received == 10


def test_multi_line_partial_receipt_with_returns():
    # one line complete, the other not: still a partial receipt overall
    assert derive_purchase_status(items((10, 10, 2), (5, 0, 0))) == "partially_received"


def test_multi_line_full_unwind_before_full_receipt_resets_to_pending():
    assert derive_purchase_status(items((10, 3, 3), (5, 2, 2))) == "pending"


def test_idempotent_recompute():
    snapshot = items((10, 10, 4), (3, 1, 0))
    first = derive_purchase_status(snapshot)
    assert all(derive_purchase_status(snapshot) == first for _ in range(5))


@pytest.mark.parametrize("returned", [0, 3, 50])
def test_nothing_received_is_pending_even_with_returns(returned):
    assert derive_purchase_status(items((10, 0, returned))) == "pending"


def test_empty_purchase_is_pending():
    assert derive_purchase_status([]) == "pending"


def test_malformed_quantities_do_not_raise():
    # received above ordered counts as complete receipt
    assert derive_purchase_status(items((10, 12, 0))) == "received"
    # returned above received: net negative behaves as a full unwind
    assert derive_purchase_status(items((10, 10, 12))) == "returned"
    assert derive_purchase_status(items((10, 4, 6))) == "pending"


def test_fractional_quantities():
    assert derive_purchase_status(items((2.5, 2.5, 0))) == "received"
    assert derive_purchase_status(items((0.3, 0.1 + 0.2, 0))) == "received"


def test_purchase_stats_excludes_returned():
    purchases = [
        Purchase("P1", 100.0, status="pending"),
        Purchase("P2", 50.0, status="received"),
        Purchase("P3", 25.0, status="received"),
        Purchase("P4", 80.0, status="returned"),
        Purchase("P5", 10.0, status="cancelled"),
    ]
    stats = purchase_stats(purchases)
    assert stats.total_purchases == 4
    assert stats.total_amount == pytest.approx(185.0)
    assert stats.count("received") == 2
    assert stats.count("returned") == 0
    assert stats.count("cancelled") == 1
    assert stats.count("partially_received") == 0
