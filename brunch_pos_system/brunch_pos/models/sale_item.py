from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

@dataclass
class SaleItem:
    id: int
    sale_id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    price_at_sale: float

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "SaleItem":
        return cls(
            int(r["id"]),
            int(r["sale_id"]),
            int(r["product_id"]) if r.get("product_id") is not None else None,
            str(r["product_name"]),
            int(r["quantity"]),
            float(r["price_at_sale"]),
        )
