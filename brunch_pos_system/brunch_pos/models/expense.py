from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class Expense:
    id: int
    expense_date: str
    expense_time: str
    description: str
    amount: float

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Expense":
        return cls(
            int(r["id"]),
            str(r["expense_date"]),
            str(r["expense_time"]),
            r.get("description") or "",
            float(r["amount"]),
        )
