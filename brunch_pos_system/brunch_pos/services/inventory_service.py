from __future__ import annotations

from typing import Optional

from brunch_pos.models.inventory_item import InventoryItem
from brunch_pos.services.data_service import DataService


class InventoryService:
    def __init__(self, data: DataService):
        self.data = data
        self.data.ensure_inventory_tables()

    def restock(self, item_id: int, add_qty: float, reason: str = "Reabastecimiento") -> int:
        return self.data.adjust_inventory(item_id, max(0.0, float(add_qty)), reason)

    def consume(self, item_id: int, qty: float, reason: str = "Consumo") -> int:
        return self.data.adjust_inventory(item_id, -max(0.0, float(qty)), reason)

    def set_count(self, item_id: int, counted: float, reason: str = "Conteo físico") -> int:
        """Physical count: record whatever delta brings stock to `counted`."""
        item = self.data.get_inventory_item(item_id)
        if item is None:
            return 0
        delta = float(counted) - item.stock
        if delta == 0:
            return 1
        return self.data.adjust_inventory(item_id, delta, reason)

    def low_stock_items(self) -> list[InventoryItem]:
        return [i for i in self.data.get_all_inventory_items() if i.stock <= i.min_stock]

    def reconcile(self, item_id: int) -> Optional[tuple[float, float]]:
        """(stock, sum of movement deltas); the two are equal for a healthy item."""
        item = self.data.get_inventory_item(item_id)
        if item is None:
            return None
        moved = sum(m.delta for m in self.data.get_item_movements(item_id, limit=None))
        return item.stock, moved
