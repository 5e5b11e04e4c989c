from __future__ import annotations

import re
from typing import Any

_USERNAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


def validate_username(username: str) -> tuple[bool, str]:
    """
    Check a username against policy.
    Returns (True, "") on pass, or (False, "reason") on fail.
    Policy:
      - 3 to 20 characters
      - Must start with a letter
      - Letters, digits and underscore only
    """
    username = username or ""
    if len(username) < 3 or len(username) > 20:
        return False, "Username must be between 3 and 20 characters."

    if not _USERNAME_RE.fullmatch(username):
        return False, ("Username may only contain letters, numbers and underscores, "
                       "and must start with a letter.")

    return True, ""


def validate_password(password: str) -> tuple[bool, str]:
    """
    Check a password against policy.
    Policy:
      - Min 8 characters
      - At least one uppercase letter
      - At least one lowercase letter
      - At least one digit
    """
    password = password or ""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long."

    if not re.search(r"[A-Z]", password):
        return False, "Password must include at least one uppercase letter (A-Z)."

    if not re.search(r"[a-z]", password):
        return False, "Password must include at least one lowercase letter (a-z)."

    if not re.search(r"[0-9]", password):
        return False, "Password must include at least one number (0-9)."

    return True, ""


def nonempty(s: Any) -> bool:
    return bool(s and str(s).strip())

def nonneg_number(v: Any) -> bool:
    try:
        return float(v) >= 0
    except (TypeError, ValueError):
        return False
