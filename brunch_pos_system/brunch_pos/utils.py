from __future__ import annotations

import hashlib
import hmac
from datetime import datetime
from typing import Any

# ---------------- Password hashing ----------------
# Deterministic: the same password always yields the same hash, so a stored
# hash can be compared against the users table to resume a session.

_SALT = b"brunch-and-bites-pos-salt"

def hash_password(password: str) -> str:
    data = _SALT + password.encode("utf-8")
    return hashlib.sha256(data).hexdigest()

def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash or "")

def same_hash(a: str, b: str) -> bool:
    return hmac.compare_digest(a or "", b or "")


# ---------------- Local wall-clock stamps ----------------
def local_date(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d")

def local_time(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%H:%M:%S")

def local_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


# ---------------- Money ----------------
def round_money(value: Any) -> float:
    return round(float(value), 2)
