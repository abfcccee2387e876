# purchase_reconciliation/__init__.py
"""
Purchase reconciliation: lifecycle status, net payable amount, payment
status and refund obligations for purchase orders.

The engine lives in ``modules.purchase``; ``database`` is the sqlite
persistence adapter that feeds it snapshots.
"""

__version__ = "0.3.0"
