# utils/helpers.py
from datetime import date, datetime, timezone
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def utc_today() -> date:
    """Today in UTC, the zone created_at timestamps are written in."""
    return datetime.now(timezone.utc).date()


def now_iso() -> str:
    """UTC timestamp in ISO-8601, used for created_at columns and timeline events."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO date/datetime string (or pass through a datetime/date).

    Naive values are taken as UTC so that mixed inputs stay comparable.
    Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            _log.debug("parse_timestamp: unparseable value %r", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    On parse failure returns str(v), or `sentinel` when given; raises
    ValueError instead when `strict=True`.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
