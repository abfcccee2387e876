from __future__ import annotations
from typing import Optional

# ---------- Human labels ----------
LABELS = {
    "unpaid":   "Unpaid",
    "partial":  "Partially Paid",
    "paid":     "Paid",
    "overpaid": "Overpaid",
}

# ---------- Descriptions (UI copy / tooltips) ----------
DESCRIPTIONS = {
    "unpaid":   "No active payment recorded against this purchase.",
    "partial":  "Some of the payable amount has been paid.",
    "paid":     "The payable amount has been settled exactly.",
    "overpaid": "Active payments exceed the payable amount.",
}

# ---------- Badge colors ----------
BADGE_COLORS = {
    "unpaid":   "red",
    "partial":  "yellow",
    "paid":     "green",
    "overpaid": "purple",
}
REFUNDED_COLOR = "green"
REFUND_DUE_COLOR = "orange"

# Prefix used in refund-qualified labels ("Partial - Refund Due").
_REFUND_PREFIX = {
    "paid":     "Paid",
    "overpaid": "Overpaid",
}

# (Optional) style tokens the UI can map to colors/icons
STYLES = {
    "red":    {"badge": "danger",  "fg": "#991B1B", "bg": "#FEE2E2"},
    "yellow": {"badge": "warning", "fg": "#92400E", "bg": "#FEF3C7"},
    "green":  {"badge": "success", "fg": "#065F46", "bg": "#D1FAE5"},
    "purple": {"badge": "info",    "fg": "#5B21B6", "bg": "#EDE9FE"},
    "orange": {"badge": "warning", "fg": "#9A3412", "bg": "#FFEDD5"},
}
_NEUTRAL_STYLE = {"badge": "neutral", "fg": "#374151", "bg": "#F3F4F6"}

# ---------- API ----------

def normalize(state: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty. Does NOT invent synonyms."""
    if state is None:
        return None
    s = str(state).strip().lower()
    return s or None


def label(state: str) -> str:
    """Human label ('Partially Paid'). If unknown, returns the original string title-cased."""
    s = normalize(state)
    if s in LABELS:
        return LABELS[s]  # type: ignore[index]
    return (state or "").strip().title()


def description(state: str) -> str:
    """Short human description for tooltips; empty string if unknown."""
    s = normalize(state)
    return DESCRIPTIONS.get(s, "")


def badge_color(state: str) -> str:
    s = normalize(state)
    return BADGE_COLORS.get(s, "gray")


def style_tokens(color: str) -> dict:
    """
    Style dict for a badge color, e.g. {'badge': 'success', 'fg': '#065F46', 'bg': '#D1FAE5'}.
    Unknown colors fall back to a neutral style.
    """
    return STYLES.get(normalize(color) or "", _NEUTRAL_STYLE)


def display_for(
    payment_status: str,
    *,
    refund_due: bool,
    refunded: bool,
    payment_made_after_returns: bool,
) -> tuple[str, str]:
    """
    (display_status, badge_color) for the composite purchase badge.

    A payment recorded after the returns already absorbed them, so refund
    wording is suppressed. Otherwise completed refunds take precedence over
    an outstanding refund due.
    """
    s = normalize(payment_status) or "unpaid"
    if not payment_made_after_returns:
        if refunded and not refund_due:
            return f"{_REFUND_PREFIX.get(s, 'Partial')} - Refunded", REFUNDED_COLOR
        if refund_due:
            return f"{_REFUND_PREFIX.get(s, 'Partial')} - Refund Due", REFUND_DUE_COLOR
    return label(s), badge_color(s)
