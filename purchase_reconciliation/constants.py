# purchase_reconciliation/constants.py

DATA_DIR = "data"
DB_FILE_NAME = "purchases.db"
DB_ENV_VAR = "PURCHASE_RECON_DB"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "3"

# Days after purchase creation during which a return may be refunded.
REFUND_ELIGIBILITY_DAYS = 30

# Float tolerance for money/quantity comparisons.
EPSILON = 1e-9

# ---------- Payments ----------
PAYMENT_METHODS: tuple[str, ...] = ("cash", "bank_transfer", "check", "credit_card", "other")

# ---------- Returns / refunds ----------
OPEN_REFUND_STATUSES: tuple[str, ...] = ("pending", "processing")

# ---------- Timeline ----------
EVENT_TYPES: tuple[str, ...] = (
    "order_placed",
    "partial_receipt",
    "full_receipt",
    "partial_return",
    "full_return",
    "payment_made",
    "payment_voided",
    "status_change",
    "balance_resolved",
    "cancelled",
)
RETURN_EVENT_TYPES: tuple[str, ...] = ("partial_return", "full_return")
