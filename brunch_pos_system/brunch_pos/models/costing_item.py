from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class CostingItem:
    id: int
    costing_id: int
    item_name: str
    unit_of_measure: str
    unit_price: float
    quantity_used: float

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "CostingItem":
        return cls(
            int(r["id"]),
            int(r["costing_id"]),
            str(r["item_name"]),
            r.get("unit_of_measure") or "",
            float(r["unit_price"]),
            float(r["quantity_used"]),
        )
