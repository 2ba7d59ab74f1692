"""
rowbinder/config.py
-------------------
Central configuration module. Loads environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("ROWBINDER_DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("ROWBINDER_DB_PORT", "5432"))
DB_NAME: str = os.getenv("ROWBINDER_DB_NAME", "rowbinder")
DB_USER: str = os.getenv("ROWBINDER_DB_USER", "rowbinder")
DB_PASS: str = os.getenv("ROWBINDER_DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "ROWBINDER_DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

DB_POOL_MIN: int = int(os.getenv("ROWBINDER_DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("ROWBINDER_DB_POOL_MAX", "5"))

# ── SQLite ────────────────────────────────────────────────
SQLITE_DIRECTORY: str = os.getenv("ROWBINDER_SQLITE_DIRECTORY", ".")

# ── Mapping ───────────────────────────────────────────────
# Separator used when a foreign-key-list column is stored as plain text.
FK_LIST_DELIMITER: str = os.getenv("ROWBINDER_FK_LIST_DELIMITER", ",")

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("ROWBINDER_LOG_LEVEL", "INFO").upper()
