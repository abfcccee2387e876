import os
from pathlib import Path

from .constants import DATA_DIR, DB_ENV_VAR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR


def db_path() -> Path:
    """Database location: $PURCHASE_RECON_DB if set, else <package>/data/purchases.db."""
    override = os.environ.get(DB_ENV_VAR)
    if override:
        return Path(override)
    return DATA_PATH / DB_FILE_NAME
