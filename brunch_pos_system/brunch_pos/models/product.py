from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

@dataclass
class Product:
    id: int
    name: str
    price: float
    cost: float

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Product":
        return cls(int(r["id"]), str(r["name"]), float(r["price"]), float(r["cost"]))
