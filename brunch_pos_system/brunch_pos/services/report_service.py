from __future__ import annotations

from collections import defaultdict
from typing import Any, Optional

from brunch_pos.services.data_service import DataService
from brunch_pos.utils import round_money


def _in_range(day: str, date_from: Optional[str], date_to: Optional[str]) -> bool:
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


class ReportService:
    """Figures for the reports screen. Dates are inclusive YYYY-MM-DD strings."""

    def __init__(self, data: DataService):
        self.data = data

    def summary(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> dict[str, Any]:
        """
        net is cash basis: revenue minus recorded expenses. Ingredient purchases
        are already expenses, so cost_of_goods is only subtracted in gross_profit.
        """
        sales = [s for s in self.data.get_all_sales() if _in_range(s.sale_date, date_from, date_to)]
        expenses = [e for e in self.data.get_all_expenses() if _in_range(e.expense_date, date_from, date_to)]

        revenue = round_money(sum(s.total_amount for s in sales))
        spent = round_money(sum(e.amount for e in expenses))

        products = {p.id: p for p in self.data.get_all_products()}
        cost_of_goods = 0.0
        for s in sales:
            for it in self.data.get_sale_items(s.id):
                p = products.get(it.product_id) if it.product_id is not None else None
                if p is not None:
                    cost_of_goods += p.cost * it.quantity

        return {
            "sales_count": len(sales),
            "revenue": revenue,
            "expenses": spent,
            "cost_of_goods": round_money(cost_of_goods),
            "gross_profit": round_money(revenue - cost_of_goods),
            "net": round_money(revenue - spent),
            "average_ticket": round_money(revenue / len(sales)) if sales else 0.0,
        }

    def best_sellers(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Grouped by the product name recorded on the sale, most units first."""
        qty: dict[str, int] = defaultdict(int)
        revenue: dict[str, float] = defaultdict(float)
        for s in self.data.get_all_sales():
            if not _in_range(s.sale_date, date_from, date_to):
                continue
            for it in self.data.get_sale_items(s.id):
                qty[it.product_name] += it.quantity
                revenue[it.product_name] += it.quantity * it.price_at_sale

        rows = [
            {"product_name": name, "qty_sold": qty[name], "revenue": round_money(revenue[name])}
            for name in qty
        ]
        rows.sort(key=lambda r: (-r["qty_sold"], -r["revenue"], r["product_name"]))
        return rows[:limit]
