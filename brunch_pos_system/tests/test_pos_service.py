# Register checkout, receipts, costings and report figures.

import pytest

from brunch_pos.errors import InvalidSaleError
from brunch_pos.services.costing_service import CostingService
from brunch_pos.services.pos_service import POSService
from brunch_pos.services.report_service import ReportService


@pytest.fixture
def pos(data) -> POSService:
    return POSService(data)


@pytest.fixture
def coffee(data):
    return data.get_product_by_id(data.add_product("Coffee", 25, 8))


class TestCheckout:
    @pytest.mark.smoke
    def test_change_is_payment_minus_total(self, data, pos, coffee, admin):
        sale_id = pos.checkout(admin.id, [pos.cart_item(coffee, 1)], 30)
        sale = data.get_sale_by_id(sale_id)
        assert sale.total_amount == 25.0
        assert sale.change_given == 5.00
        assert sale.user_id == admin.id
        assert data.get_all_sales()[0].id == sale_id

    def test_short_payment_writes_nothing(self, data, pos, coffee):
        with pytest.raises(InvalidSaleError):
            pos.checkout(None, [pos.cart_item(coffee, 2)], 30)
        assert data.get_all_sales() == []

    @pytest.mark.parametrize("item", [
        {"product_id": 1, "product_name": "Coffee", "quantity": 0, "price_at_sale": 25},
        {"product_id": 1, "product_name": "Coffee", "quantity": 1, "price_at_sale": -1},
        {"product_id": 1, "product_name": "", "quantity": 1, "price_at_sale": 25},
        {"product_id": 1, "product_name": "Coffee", "quantity": "many", "price_at_sale": 25},
    ])
    def test_bad_items_are_rejected_up_front(self, data, pos, item):
        with pytest.raises(InvalidSaleError):
            pos.checkout(None, [item], 100)
        assert data.get_all_sales() == []

    def test_empty_cart(self, pos):
        with pytest.raises(InvalidSaleError):
            pos.checkout(None, [], 10)

    def test_cart_total_rounds_to_cents(self):
        items = [
            {"product_name": "A", "quantity": 3, "price_at_sale": 0.1},
            {"product_name": "B", "quantity": 1, "price_at_sale": 0.2},
        ]
        assert POSService.cart_total(items) == 0.5

    def test_receipt(self, pos, coffee):
        sale_id = pos.checkout(None, [pos.cart_item(coffee, 2)], 100)
        receipt = pos.receipt(sale_id)
        assert receipt["business_name"] == "Brunch & Bites"
        assert receipt["lines"] == [{"name": "Coffee", "qty": 2, "unit_price": 25.0, "line_total": 50.0}]
        assert (receipt["total"], receipt["change_given"]) == (50.0, 50.0)
        assert pos.receipt(9999) is None


class TestCostings:
    def test_total_is_sum_of_lines(self, data):
        svc = CostingService(data)
        cid = svc.create_costing("Hot cakes", [
            {"item_name": "Harina", "unit_of_measure": "kg", "unit_price": 20, "quantity_used": 0.25},
            {"item_name": "Leche", "unit_of_measure": "l", "unit_price": 24, "quantity_used": 0.5},
        ])
        detail = svc.costing_detail(cid)
        assert detail["costing"].total_cost == 17.0
        assert [i.item_name for i in detail["items"]] == ["Harina", "Leche"]

    def test_invalid_lines(self, data):
        svc = CostingService(data)
        with pytest.raises(InvalidSaleError):
            svc.create_costing("X", [{"item_name": "Agua", "unit_price": -1, "quantity_used": 1}])
        with pytest.raises(InvalidSaleError):
            svc.create_costing("  ", [])
        assert data.get_all_costings() == []


class TestReports:
    def test_summary_and_best_sellers(self, data, pos, coffee):
        bagel = data.get_product_by_id(data.add_product("Bagel", 40, 15))
        data.add_expense("Gas", 30, expense_date="2024-06-01", expense_time="08:00:00")

        s1 = data.add_sale(90, 100, 10, sale_date="2024-06-01", sale_time="09:00:00")
        data.add_sale_items(s1, [pos.cart_item(coffee, 2), pos.cart_item(bagel, 1)])
        s2 = data.add_sale(25, 25, 0, sale_date="2024-06-02", sale_time="09:00:00")
        data.add_sale_items(s2, [pos.cart_item(coffee, 1)])

        reports = ReportService(data)
        summary = reports.summary("2024-06-01", "2024-06-01")
        assert summary["sales_count"] == 1
        assert summary["revenue"] == 90.0
        assert summary["expenses"] == 30.0
        assert summary["net"] == 60.0
        assert summary["cost_of_goods"] == 31.0
        assert summary["gross_profit"] == 59.0

        top = reports.best_sellers("2024-06-01", "2024-06-30")
        assert [(r["product_name"], r["qty_sold"]) for r in top] == [("Coffee", 3), ("Bagel", 1)]
