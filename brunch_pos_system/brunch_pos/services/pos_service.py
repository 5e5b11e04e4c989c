from __future__ import annotations

from typing import Any, Iterable, Optional

from brunch_pos.config import BUSINESS_NAME
from brunch_pos.errors import InvalidSaleError
from brunch_pos.models.product import Product
from brunch_pos.services.data_service import DataService
from brunch_pos.utils import round_money


class POSService:
    """Register (caja): cart math and checkout on top of the data façade."""

    def __init__(self, data: DataService, business_name: str = BUSINESS_NAME):
        self.data = data
        self.business_name = business_name

    # ---- Cart ----
    @staticmethod
    def cart_item(product: Product, quantity: int = 1) -> dict[str, Any]:
        """Snapshot of the product as sold; later edits to the product do not touch it."""
        return {
            "product_id": product.id,
            "product_name": product.name,
            "quantity": int(quantity),
            "price_at_sale": float(product.price),
        }

    @staticmethod
    def cart_total(items: Iterable[dict[str, Any]]) -> float:
        return round_money(sum(float(it["price_at_sale"]) * int(it["quantity"]) for it in items))

    def _validate(self, items: list[dict[str, Any]]) -> None:
        if not items:
            raise InvalidSaleError("A sale needs at least one item")
        for it in items:
            if not str(it.get("product_name") or "").strip():
                raise InvalidSaleError("Every item needs a product name")
            try:
                qty = int(it["quantity"])
                price = float(it["price_at_sale"])
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidSaleError(f"Bad item {it!r}: {exc}") from exc
            if qty <= 0:
                raise InvalidSaleError(f"Quantity must be positive for {it['product_name']}")
            if price < 0:
                raise InvalidSaleError(f"Price cannot be negative for {it['product_name']}")

    # ---- Checkout ----
    def checkout(
        self,
        user_id: Optional[int],
        items: Iterable[dict[str, Any]],
        payment_received: float,
    ) -> int:
        """
        Record a sale and its items. Everything is validated first, since the
        item inserts are not rolled back if one of them fails.
        Returns the sale id.
        """
        items = list(items)
        self._validate(items)
        total = self.cart_total(items)
        payment = round_money(payment_received)
        change = round_money(payment - total)
        if change < 0:
            raise InvalidSaleError(f"Payment {payment:.2f} does not cover total {total:.2f}")

        sale_id = self.data.add_sale(
            total_amount=total,
            payment_received=payment,
            change_given=change,
            business_name=self.business_name,
            user_id=user_id,
        )
        self.data.add_sale_items(sale_id, items)
        return sale_id

    def receipt(self, sale_id: int) -> Optional[dict[str, Any]]:
        """Everything a receipt printer needs for one sale, or None."""
        sale = self.data.get_sale_by_id(sale_id)
        if sale is None:
            return None
        items = self.data.get_sale_items(sale_id)
        return {
            "sale_id": sale.id,
            "business_name": sale.business_name or self.business_name,
            "date": sale.sale_date,
            "time": sale.sale_time,
            "lines": [
                {
                    "name": it.product_name,
                    "qty": it.quantity,
                    "unit_price": it.price_at_sale,
                    "line_total": round_money(it.quantity * it.price_at_sale),
                }
                for it in items
            ],
            "total": sale.total_amount,
            "payment_received": sale.payment_received,
            "change_given": sale.change_given,
        }
