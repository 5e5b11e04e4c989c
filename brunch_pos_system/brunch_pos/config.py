from __future__ import annotations

import os
from pathlib import Path

# ---------------- App Info ----------------
APP_NAME = "Brunch & Bites POS"
APP_VERSION = "1.0"

BUSINESS_NAME = "Brunch & Bites"


# ---------------- Paths ----------------
BASE_DIR = Path(__file__).resolve().parent  # .../brunch_pos
PROJECT_DIR = BASE_DIR.parent  # project root

DATA_DIR = Path(os.environ.get("BRUNCH_POS_DATA_DIR", PROJECT_DIR / "data"))
DB_PATH = DATA_DIR / "pos_system.db"
KV_STORE_PATH = DATA_DIR / "pos_storage.json"


# ---------------- Storage backend ----------------
# "auto" probes for a usable embedded SQLite, "sqlite" / "kv" force one.
BACKEND = os.environ.get("BRUNCH_POS_BACKEND", "auto").strip().lower()

# Every key the key/value backend writes starts with this prefix.
STORAGE_PREFIX = "pos_system_"

# Example products and sales for the key/value backend on first run.
SEED_DEMO_DATA = os.environ.get("BRUNCH_POS_SEED_DEMO", "1") not in ("0", "false", "no")


# ---------------- Connection tuning ----------------
BUSY_TIMEOUT_MS = 5000
OPEN_WAIT_TIMEOUT = 10.0  # seconds a caller waits for another caller's open
OPEN_POLL_INTERVAL = 0.05


# ---------------- Session persistence ----------------
KEYRING_SERVICE = "brunch-pos"


# ---------------- Defaults / Seeding ----------------
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "Admin123"


# ---------------- Logging ----------------
LOG_LEVEL = os.environ.get("BRUNCH_POS_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
