from purchase_reconciliation.database.repositories import (
    PurchaseHeader,
    PurchaseLine,
    PurchasePaymentsRepo,
    PurchasesRepo,
    ReturnRequest,
)
from purchase_reconciliation.modules.purchase.models import Purchase, PurchaseItem
from purchase_reconciliation.modules.purchase.service import ReconciliationService
from purchase_reconciliation.modules.purchase.statement import render_statement, save_statement


def test_statement_with_refund_due(conn, purchase_id, item_ids):
    purchases = PurchasesRepo(conn)
    payments = PurchasePaymentsRepo(conn)
    purchases.record_receipt(purchase_id, {item_ids["Widget A"]: 10, item_ids["Widget B"]: 4},
                             at="2025-01-06T09:00:00+00:00")
    payments.record_payment(purchase_id, amount=60, method="bank_transfer", date="2025-01-07",
                            at="2025-01-07T12:00:00+00:00")
    bad = payments.record_payment(purchase_id, amount=5, method="cash", date="2025-01-07",
                                  at="2025-01-07T13:00:00+00:00")
    payments.void_payment(bad, "typo", at="2025-01-07T14:00:00+00:00")
    purchases.process_return(
        purchase_id, ReturnRequest("Damaged", "2025-01-10", "ops", {item_ids["Widget A"]: 8}),
        at="2025-01-10T09:00:00+00:00",
    )

    snap = ReconciliationService(conn).snapshot(purchase_id)
    html = render_statement(snap.purchase, snap.payments, snap.returns, snap.timeline)

    assert "<title>Purchase PO-0001</title>" in html
    assert 'data-color="orange">Paid - Refund Due</span>' in html
    assert "Partially Returned" in html
    assert "<h2>Refunds</h2>" in html
    assert '<tr class="void">' in html
    assert "VOIDED: typo" in html
    assert "Damaged" in html
    assert "Partial Return Processed" in html
    assert '<td class="num">50.00</td>' in html


def test_statement_without_activity_and_escaping():
    p = Purchase(
        purchase_id="PO-9",
        total_amount=1250.0,
        items=(PurchaseItem(5, 0, 0, 250.0, item_name="Pump <XL>"),),
        supplier_name="A & B Supply",
    )
    html = render_statement(p, title="Draft")
    assert "<title>Draft</title>" in html
    assert "Pump &lt;XL&gt;" in html
    assert "A &amp; B Supply" in html
    assert "1,250.00" in html
    assert 'data-color="red">Unpaid</span>' in html
    assert 'title="No active payment recorded against this purchase."' in html
    assert "<h2>Payments</h2>" not in html
    assert "<h2>Refunds</h2>" not in html
    assert "<h2>Timeline</h2>" not in html


def test_save_statement_creates_parent_dirs(tmp_path):
    out = save_statement("<html></html>", tmp_path / "out" / "PO-1.html")
    assert out.read_text(encoding="utf-8") == "<html></html>"
