from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class User:
    id: int
    username: str
    password_hash: str
    is_admin: bool

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "User":
        return cls(int(r["id"]), str(r["username"]), str(r["password_hash"]), bool(r["is_admin"]))
