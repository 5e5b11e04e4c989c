from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from brunch_pos.config import BUSINESS_NAME

logger = logging.getLogger(__name__)

# name, price, cost
DEMO_PRODUCTS = [
    ("Café Americano", 25.00, 8.00),
    ("Croissant", 35.00, 12.00),
    ("Sandwich Club", 85.00, 35.00),
]

# days ago, time, payment, [(product name, quantity)]
DEMO_SALES = [
    (0, "09:30:00", 150.00, [("Café Americano", 2), ("Sandwich Club", 1)]),
    (1, "14:15:00", 60.00, [("Croissant", 1), ("Café Americano", 1)]),
]


def seed_demo_data(backend, user_id: Optional[int] = None, today: Optional[date] = None) -> bool:
    """
    Load the example menu and two sample sales into an empty store.
    Runs only when there are no products and no sales yet.
    """
    if backend.list_products() or backend.list_sales():
        return False

    today = today or date.today()
    prices = {}
    for name, price, cost in DEMO_PRODUCTS:
        pid = backend.add_product(name, price, cost)
        prices[name] = (pid, price)

    for days_ago, sale_time, payment, lines in DEMO_SALES:
        total = round(sum(prices[name][1] * qty for name, qty in lines), 2)
        sale_id = backend.add_sale({
            "sale_date": (today - timedelta(days=days_ago)).isoformat(),
            "sale_time": sale_time,
            "total_amount": total,
            "payment_received": payment,
            "change_given": round(payment - total, 2),
            "business_name": BUSINESS_NAME,
            "user_id": user_id,
        })
        for name, qty in lines:
            pid, price = prices[name]
            backend.add_sale_item(sale_id, {
                "product_id": pid,
                "product_name": name,
                "quantity": qty,
                "price_at_sale": price,
            })

    logger.info("Seeded %d demo products and %d demo sales", len(DEMO_PRODUCTS), len(DEMO_SALES))
    return True
