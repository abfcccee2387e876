# utils/validators.py

def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)
    """
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


# ---- Quantity invariants ----

def quantity_error(quantity, received, returned):
    """
    Check 0 <= returned <= received <= quantity for one purchase line.

    Returns None when the line is consistent, else a user-facing message.
    """
    for name, value in (("Ordered", quantity), ("Received", received), ("Returned", returned)):
        if not is_non_negative_number(value):
            return f"{name} quantity must be a non-negative number."
    q, rcv, ret = float(quantity), float(received), float(returned)
    if rcv > q:
        return f"Received quantity ({rcv:g}) cannot exceed ordered quantity ({q:g})."
    if ret > rcv:
        return f"Returned quantity ({ret:g}) cannot exceed received quantity ({rcv:g})."
    return None
