from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class Costing:
    id: int
    name: str
    total_cost: float
    costing_date: str

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Costing":
        return cls(int(r["id"]), str(r["name"]), float(r["total_cost"]), str(r["costing_date"]))
