# modules/purchase/statement.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from ..payments.payment_utilities.status import description, label, style_tokens
from ...utils.helpers import fmt_money
from .models import Purchase, PurchaseEvent, PurchasePayment, PurchaseReturn
from .reconciliation import (
    amount_paid,
    calculate_complete_payment_status,
    calculate_net_payment_amount,
)
from .status import derive_purchase_status
from .timeline import sort_events

_log = logging.getLogger(__name__)

_env = Environment(
    loader=PackageLoader("purchase_reconciliation", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money"] = fmt_money
_env.filters["status_label"] = lambda s: (s or "").replace("_", " ").title()


def render_statement(
    purchase: Purchase,
    payments: Iterable[PurchasePayment] = (),
    returns: Iterable[PurchaseReturn] = (),
    timeline: Iterable[PurchaseEvent] = (),
    *,
    title: Optional[str] = None,
) -> str:
    """Read-only HTML reconciliation statement for one purchase."""
    payments = list(payments)
    returns = list(returns)
    events = sort_events(timeline)
    paid = amount_paid(payments)
    result = calculate_complete_payment_status(purchase, paid, returns, events)

    html = _env.get_template("statement.html").render(
        title=title or f"Purchase {purchase.purchase_id}",
        purchase=purchase,
        lifecycle_status=derive_purchase_status(purchase.items),
        amounts=calculate_net_payment_amount(purchase),
        amount_paid=paid,
        payments=payments,
        returns=returns,
        timeline=events,
        result=result,
        payment_label=label(result.payment_status),
        payment_description=description(result.payment_status),
        badge=style_tokens(result.display_badge_color),
    )
    _log.debug("rendered statement for %s (%d bytes)", purchase.purchase_id, len(html))
    return html


def save_statement(html: str, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(html, encoding="utf-8")
    return out
