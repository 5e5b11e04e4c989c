from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class Permission:
    id: int
    name: str

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Permission":
        return cls(int(r["id"]), str(r["name"]))
