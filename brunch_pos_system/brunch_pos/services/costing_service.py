from __future__ import annotations

from typing import Any, Iterable, Optional

from brunch_pos.errors import InvalidSaleError
from brunch_pos.services.data_service import DataService
from brunch_pos.utils import round_money
from brunch_pos.validators import nonempty, nonneg_number


class CostingService:
    """Recipe costings (costeos): a named list of ingredients and their cost."""

    def __init__(self, data: DataService):
        self.data = data

    @staticmethod
    def total_cost(items: Iterable[dict[str, Any]]) -> float:
        return round_money(sum(float(it["unit_price"]) * float(it["quantity_used"]) for it in items))

    def create_costing(self, name: str, items: Iterable[dict[str, Any]]) -> int:
        items = list(items)
        if not nonempty(name):
            raise InvalidSaleError("Costing name cannot be empty")
        for it in items:
            if not nonempty(it.get("item_name")):
                raise InvalidSaleError("Every costing item needs a name")
            if not nonneg_number(it.get("unit_price")) or not nonneg_number(it.get("quantity_used")):
                raise InvalidSaleError(f"Unit price and quantity must be non-negative for {it.get('item_name')}")

        costing_id = self.data.add_costing(name.strip(), self.total_cost(items))
        self.data.add_costing_items(costing_id, items)
        return costing_id

    def costing_detail(self, costing_id: int) -> Optional[dict[str, Any]]:
        costing = self.data.get_costing_by_id(costing_id)
        if costing is None:
            return None
        return {"costing": costing, "items": self.data.get_costing_items(costing_id)}
