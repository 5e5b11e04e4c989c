from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

@dataclass
class InventoryMovement:
    id: int
    item_id: int
    delta: float  # positive for stock in, negative for stock out
    reason: Optional[str]
    created_at: str

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "InventoryMovement":
        return cls(int(r["id"]), int(r["item_id"]), float(r["delta"]), r.get("reason"), str(r["created_at"]))
