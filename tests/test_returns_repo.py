from datetime import date, datetime

import pytest

from purchase_reconciliation.database.repositories import (
    DomainError,
    PurchaseHeader,
    PurchaseLine,
    PurchasePaymentsRepo,
    PurchaseReturnsRepo,
    PurchasesRepo,
    ReturnRequest,
)
from purchase_reconciliation.database.repositories import purchase_returns_repo
from purchase_reconciliation.modules.payments.payment_utilities import refunds


@pytest.fixture()
def paid_and_returned(conn, purchase_id, item_ids):
    """
    PO-0001 fully received, paid 30 + 30, then 8 x Widget A (40.00) returned.
    Returns (return_id, [older_payment_id, newer_payment_id]).
    """
    purchases = PurchasesRepo(conn)
    payments = PurchasePaymentsRepo(conn)
    purchases.record_receipt(
        purchase_id, {item_ids["Widget A"]: 10, item_ids["Widget B"]: 4},
        at="2025-01-06T09:00:00+00:00",
    )
    p1 = payments.record_payment(purchase_id, amount=30, method="bank_transfer", date="2025-01-06",
                                 at="2025-01-06T12:00:00+00:00")
    p2 = payments.record_payment(purchase_id, amount=30, method="cash", date="2025-01-07",
                                 at="2025-01-07T12:00:00+00:00")
    rid = purchases.process_return(
        purchase_id,
        ReturnRequest("Damaged in transit", "2025-01-10", "ops", {item_ids["Widget A"]: 8}),
        at="2025-01-10T09:00:00+00:00",
    )
    return rid, [p1, p2]


def test_list_returns(conn, purchase_id, paid_and_returned):
    rid, _ = paid_and_returned
    returns = PurchaseReturnsRepo(conn).list_returns(purchase_id)
    assert [r.return_id for r in returns] == [rid]
    r = returns[0]
    assert (r.total_amount, r.refund_status, r.refund_amount) == (40.0, "pending", 0.0)
    assert r.reason == "Damaged in transit"
    assert r.refund_transactions == ()
    assert PurchaseReturnsRepo(conn).get_return(99999) is None


def test_propose_refund_is_fifo_and_read_only(conn, paid_and_returned):
    rid, (p1, p2) = paid_and_returned
    repo = PurchaseReturnsRepo(conn)
    proposal = repo.propose_refund(rid)
    assert [(t.payment_id, t.refund_amount, t.refund_method) for t in proposal.allocations] == [
        (p1, 30.0, "bank_transfer"),
        (p2, 10.0, "cash"),
    ]
    assert proposal.unallocated_amount == 0.0
    assert repo.list_refund_transactions(rid) == []


def test_refund_lifecycle_rolls_up(conn, paid_and_returned):
    rid, (p1, p2) = paid_and_returned
    repo = PurchaseReturnsRepo(conn)
    t1, t2 = repo.create_refund_transactions(rid, at="2025-01-11T09:00:00+00:00")
    assert repo.get_return(rid).refund_status == "pending"
    assert repo.propose_refund(rid).allocations == ()

    assert repo.complete_refund_transaction(t1) == "processing"
    r = repo.get_return(rid)
    assert r.refund_amount == 30.0

    assert repo.complete_refund_transaction(t2) == "completed"
    r = repo.get_return(rid)
    assert (r.refund_status, r.refund_amount) == ("completed", 40.0)
    assert [t.payment_date for t in r.refund_transactions] == ["2025-01-06", "2025-01-07"]

    with pytest.raises(DomainError, match="already completed"):
        repo.complete_refund_transaction(t1)
    with pytest.raises(DomainError, match="already completed"):
        repo.create_refund_transactions(rid)


def test_failed_refund(conn, paid_and_returned):
    rid, _ = paid_and_returned
    repo = PurchaseReturnsRepo(conn)
    t1, t2 = repo.create_refund_transactions(rid)
    assert repo.fail_refund_transaction(t1, "account closed") == "pending"
    assert repo.fail_refund_transaction(t2, "account closed") == "failed"
    row = conn.execute(
        "SELECT failure_reason FROM refund_transactions WHERE transaction_id=?", (t1,)
    ).fetchone()
    assert row["failure_reason"] == "account closed"
    assert repo.get_return(rid).refund_amount == 0.0


def test_voided_payments_are_not_refunded(conn, paid_and_returned):
    rid, (p1, p2) = paid_and_returned
    PurchasePaymentsRepo(conn).void_payment(p1, "bounced")
    proposal = PurchaseReturnsRepo(conn).propose_refund(rid)
    assert [(t.payment_id, t.refund_amount) for t in proposal.allocations] == [(p2, 30.0)]
    assert proposal.unallocated_amount == 10.0


def test_refund_needs_a_payment(conn, purchase_id, item_ids):
    purchases = PurchasesRepo(conn)
    purchases.record_receipt(purchase_id, {item_ids["Widget B"]: 4})
    rid = purchases.process_return(
        purchase_id, ReturnRequest("Wrong size", "2025-01-10", "ops", {item_ids["Widget B"]: 1})
    )
    with pytest.raises(DomainError, match="No active payments"):
        PurchaseReturnsRepo(conn).create_refund_transactions(rid)


def test_unknown_return_and_transaction(conn):
    repo = PurchaseReturnsRepo(conn)
    with pytest.raises(DomainError, match="Return not found"):
        repo.propose_refund(404)
    with pytest.raises(DomainError, match="Refund transaction not found"):
        repo.complete_refund_transaction(404)


@pytest.mark.parametrize(
    "on, eligible, days",
    [
        (date(2025, 1, 5), True, 0),
        (date(2025, 2, 4), True, 30),
        (date(2025, 2, 5), False, 31),
    ],
)
def test_refund_eligibility(conn, purchase_id, on, eligible, days):
    result = PurchaseReturnsRepo(conn).check_refund_eligibility(purchase_id, on)
    assert result["eligible"] is eligible
    assert result["days_since_purchase"] == days
    assert (result["reason"] is None) is eligible


def test_refund_eligibility_defaults_to_utc_today(conn, purchase_id, monkeypatch):
    monkeypatch.setattr(purchase_returns_repo, "utc_today", lambda: date(2025, 2, 5))
    monkeypatch.setattr(refunds, "utc_today", lambda: date(2025, 2, 5))
    result = PurchaseReturnsRepo(conn).check_refund_eligibility(purchase_id)
    assert result == {"eligible": False, "reason": "Refund window has closed", "days_since_purchase": 31}


def test_refund_eligibility_counts_days_in_utc(conn):
    # 23:30 at UTC-05:00 is already the next day in UTC
    PurchasesRepo(conn).create_purchase(
        PurchaseHeader(purchase_id="PO-TZ", purchase_date="2025-01-05"),
        [PurchaseLine("Crate", 1, 9.0)],
        at="2025-01-05T23:30:00-05:00",
    )
    result = PurchaseReturnsRepo(conn).check_refund_eligibility("PO-TZ", datetime(2025, 2, 5, 1, 0))
    assert result["days_since_purchase"] == 30
    assert result["eligible"] is True
