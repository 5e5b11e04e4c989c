from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

@dataclass
class InventoryItem:
    id: int
    name: str
    sku: Optional[str]
    unit: Optional[str]
    stock: float
    min_stock: float
    created_at: str

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "InventoryItem":
        return cls(
            int(r["id"]),
            str(r["name"]),
            r.get("sku"),
            r.get("unit"),
            float(r["stock"]),
            float(r["min_stock"]),
            str(r["created_at"]),
        )
