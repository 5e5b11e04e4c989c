from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

@dataclass
class Sale:
    id: int
    sale_date: str
    sale_time: str
    total_amount: float
    payment_received: float
    change_given: float
    business_name: str
    user_id: Optional[int]

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Sale":
        return cls(
            int(r["id"]),
            str(r["sale_date"]),
            str(r["sale_time"]),
            float(r["total_amount"]),
            float(r["payment_received"]),
            float(r["change_given"]),
            r.get("business_name") or "",
            int(r["user_id"]) if r.get("user_id") is not None else None,
        )
