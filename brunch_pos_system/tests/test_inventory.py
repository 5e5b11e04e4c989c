# Inventory: lazily created tables, the compound stock + movement write,
# and stock always matching the movement log.

import pytest

from brunch_pos.constants import INITIAL_STOCK_REASON
from brunch_pos.errors import ConstraintViolationError, StorageError
from brunch_pos.services.inventory_service import InventoryService


@pytest.fixture
def inventory(data) -> InventoryService:
    return InventoryService(data)


class TestInventoryItems:
    def test_ensure_tables_is_repeatable(self, data):
        data.ensure_inventory_tables()
        data.ensure_inventory_tables()
        assert data.get_all_inventory_items() == []

    def test_initial_stock_becomes_first_movement(self, data):
        item_id = data.add_inventory_item("Harina", sku="HAR-1", unit="kg", stock=10, min_stock=2)
        item = data.get_inventory_item(item_id)
        assert (item.stock, item.min_stock, item.unit) == (10.0, 2.0, "kg")
        moves = data.get_item_movements(item_id)
        assert [(m.delta, m.reason) for m in moves] == [(10.0, INITIAL_STOCK_REASON)]

    def test_zero_initial_stock_writes_no_movement(self, data):
        item_id = data.add_inventory_item("Sal")
        assert data.get_item_movements(item_id) == []

    def test_sku_is_unique(self, data):
        data.add_inventory_item("Harina", sku="HAR-1")
        with pytest.raises(ConstraintViolationError):
            data.add_inventory_item("Harina integral", sku="HAR-1")

    def test_items_without_sku_do_not_collide(self, data):
        data.add_inventory_item("A")
        data.add_inventory_item("B")
        assert [i.name for i in data.get_all_inventory_items()] == ["A", "B"]


class TestAdjustInventory:
    def test_missing_item_returns_zero(self, data):
        data.ensure_inventory_tables()
        assert data.adjust_inventory(9999, 5, "x") == 0
        assert data.get_item_movements(9999) == []

    def test_stock_equals_sum_of_deltas(self, data, inventory):
        """
        SCENARIO: a mix of restocks, consumption and a physical count
        EXPECTED: stock == sum of every recorded movement delta
        """
        item_id = data.add_inventory_item("Leche", unit="l", stock=5)
        inventory.restock(item_id, 12)
        inventory.consume(item_id, 3.5)
        data.adjust_inventory(item_id, -1.5, "Merma")
        inventory.set_count(item_id, 9)

        stock, moved = inventory.reconcile(item_id)
        assert stock == pytest.approx(9.0)
        assert moved == pytest.approx(stock)

    def test_movements_newest_first_with_limit(self, data):
        item_id = data.add_inventory_item("Huevo", stock=30)
        for delta in (1, 2, 3):
            data.adjust_inventory(item_id, delta, f"lote {delta}")
        moves = data.get_item_movements(item_id, limit=2)
        assert [m.reason for m in moves] == ["lote 3", "lote 2"]
        assert len(data.get_item_movements(item_id, limit=None)) == 4


class TestInventoryService:
    def test_low_stock(self, data, inventory):
        low = data.add_inventory_item("Café en grano", stock=1, min_stock=2)
        data.add_inventory_item("Azúcar", stock=10, min_stock=2)
        assert [i.id for i in inventory.low_stock_items()] == [low]

    def test_set_count_on_target_is_noop(self, data, inventory):
        item_id = data.add_inventory_item("Mantequilla", stock=4)
        assert inventory.set_count(item_id, 4) == 1
        assert len(data.get_item_movements(item_id)) == 1

    def test_unknown_item(self, inventory):
        assert inventory.set_count(9999, 1) == 0
        assert inventory.reconcile(9999) is None


class TestKeyValueInventoryWrites:
    """Stock and movements stay in step when one of the two writes fails."""

    @staticmethod
    def _failing(store, monkeypatch, method, table):
        real = getattr(store, method)

        def wrapper(name, *args, **kwargs):
            if name == table:
                raise StorageError(f"cannot write {name}")
            return real(name, *args, **kwargs)

        monkeypatch.setattr(store, method, wrapper)

    def test_failed_movement_leaves_stock_alone(self, kv_data, monkeypatch):
        inventory = InventoryService(kv_data)
        item_id = kv_data.add_inventory_item("Leche", stock=2)
        self._failing(kv_data.backend.store, monkeypatch, "insert_into", "inventory_movements")

        with pytest.raises(StorageError):
            kv_data.adjust_inventory(item_id, 5, "Compra")
        monkeypatch.undo()

        assert inventory.reconcile(item_id) == (2.0, 2.0)

    def test_failed_stock_update_drops_the_movement(self, kv_data, monkeypatch):
        inventory = InventoryService(kv_data)
        item_id = kv_data.add_inventory_item("Leche", stock=2)
        self._failing(kv_data.backend.store, monkeypatch, "update_where", "inventory_items")

        with pytest.raises(StorageError):
            kv_data.adjust_inventory(item_id, 5, "Compra")
        monkeypatch.undo()

        assert inventory.reconcile(item_id) == (2.0, 2.0)
        assert len(kv_data.get_item_movements(item_id)) == 1

    def test_failed_opening_movement_drops_the_item(self, kv_data, monkeypatch):
        kv_data.ensure_inventory_tables()
        self._failing(kv_data.backend.store, monkeypatch, "insert_into", "inventory_movements")

        with pytest.raises(StorageError):
            kv_data.add_inventory_item("Harina", stock=10)
        monkeypatch.undo()

        assert kv_data.get_all_inventory_items() == []
