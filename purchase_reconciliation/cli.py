"""
Command line entry points.

    python -m purchase_reconciliation init-db --db data/purchases.db
    python -m purchase_reconciliation show PO-0001
    python -m purchase_reconciliation statement PO-0001 -o out/PO-0001.html
    python -m purchase_reconciliation fix-statuses
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .database import get_connection
from .database.repositories import DomainError
from .modules.purchase.service import ReconciliationService
from .modules.purchase.statement import render_statement, save_statement
from .utils.helpers import fmt_money
from .utils.loggers import get_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="purchase-reconciliation",
        description="Purchase status, payment and refund reconciliation",
    )
    parser.add_argument("--db", help="Path to SQLite DB (default: $PURCHASE_RECON_DB or package data dir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or upgrade the database schema")

    p_show = sub.add_parser("show", help="Print the reconciliation for one purchase")
    p_show.add_argument("purchase_id")

    p_stmt = sub.add_parser("statement", help="Write an HTML reconciliation statement")
    p_stmt.add_argument("purchase_id")
    p_stmt.add_argument("-o", "--output", required=True, help="Output .html path")

    sub.add_parser("fix-statuses", help="Re-derive and store every purchase status")
    return parser


def _print_reconciliation(rec) -> None:
    p = rec.snapshot.purchase
    r = rec.payment
    rows = [
        ("Purchase", p.purchase_id),
        ("Status", rec.derived_status + (f" (stored: {p.status})" if rec.status_drift else "")),
        ("Original amount", fmt_money(rec.amounts.original_amount)),
        ("Returned goods", fmt_money(rec.amounts.return_amount)),
        ("Net amount", fmt_money(rec.amounts.net_amount)),
        ("Paid", f"{fmt_money(rec.snapshot.amount_paid)} ({r.progress_percentage}%)"),
        ("Payment", f"{r.display_status} [{r.display_badge_color}]"),
        ("Remaining", fmt_money(r.remaining_amount)),
        ("Overpaid", fmt_money(r.overpaid_amount)),
        ("Refund due", fmt_money(r.refund_due)),
        ("Refunded", fmt_money(r.refunded_amount)),
        ("Pending refunds", fmt_money(r.pending_refund_amount)),
        ("Paid after returns", "yes" if r.payment_made_after_returns else "no"),
    ]
    width = max(len(k) for k, _ in rows)
    for k, v in rows:
        print(f"{k.ljust(width)}  {v}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    log = get_logger("purchase_reconciliation", logging.DEBUG if args.verbose else logging.INFO)

    conn = get_connection(args.db)
    try:
        service = ReconciliationService(conn)
        if args.command == "init-db":
            log.info("database ready")
        elif args.command == "show":
            _print_reconciliation(service.reconcile(args.purchase_id))
        elif args.command == "statement":
            snap = service.snapshot(args.purchase_id)
            html = render_statement(snap.purchase, snap.payments, snap.returns, snap.timeline)
            out = save_statement(html, args.output)
            log.info("statement written to %s", out)
        elif args.command == "fix-statuses":
            changed = service.recompute_all_statuses()
            for pid, (old, new) in sorted(changed.items()):
                print(f"{pid}: {old} -> {new}")
            log.info("%d purchase(s) updated", len(changed))
    except DomainError as e:
        log.error("%s", e)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
