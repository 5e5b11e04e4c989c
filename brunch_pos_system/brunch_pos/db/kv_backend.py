from __future__ import annotations

import logging
from typing import Optional

from brunch_pos.constants import ALL_PERMISSION_NAMES
from brunch_pos.db.backend import Row, StorageBackend
from brunch_pos.db.kv_store import KeyValueTableStore
from brunch_pos.db.schema import CORE_TABLES, INVENTORY_TABLES
from brunch_pos.db.seed_menu import seed_demo_data

logger = logging.getLogger(__name__)


def _by_id(record_id):
    record_id = int(record_id)
    return lambda r: r.get("id") == record_id


def _newest_first(rows: list[Row], *cols: str) -> list[Row]:
    return sorted(rows, key=lambda r: tuple(r.get(c) or "" for c in cols) + (r.get("id") or 0,), reverse=True)


class KeyValueBackend(StorageBackend):
    """StorageBackend over KeyValueTableStore, for platforms without embedded SQLite."""

    name = "kv"

    def __init__(self, store: KeyValueTableStore, seed_demo: bool = False):
        self.store = store
        self.seed_demo = seed_demo
        self._initialized = False
        self._inventory_ready = False

    # ---- lifecycle ----
    def open(self):
        return self.store

    def initialize(self) -> bool:
        if self._initialized:
            return False
        for table in CORE_TABLES:
            self.store.ensure_table(table)

        if not self.store.list_table("permissions"):
            for name in ALL_PERMISSION_NAMES:
                self.store.insert_into("permissions", {"name": name})
            logger.info("Seeded %d permissions", len(ALL_PERMISSION_NAMES))

        if self.seed_demo:
            seed_demo_data(self)

        self._initialized = True
        logger.info("Key/value store %s initialized", self.store.storage.path)
        return True

    def reset(self) -> None:
        self.store.storage.invalidate()
        self._initialized = False
        self._inventory_ready = False

    def ensure_inventory_tables(self) -> None:
        if self._inventory_ready:
            return
        for table in INVENTORY_TABLES:
            self.store.ensure_table(table)
        self._inventory_ready = True

    # ---- users ----
    def add_user(self, username, password_hash, is_admin):
        return self.store.insert_into("users", {
            "username": username,
            "password_hash": password_hash,
            "is_admin": 1 if is_admin else 0,
        })

    def get_user_by_username(self, username):
        return self.store.find_one("users", username=username)

    def get_user_by_id(self, user_id):
        return self.store.find_one("users", _by_id(user_id))

    def list_users(self):
        return sorted(self.store.list_table("users"), key=lambda r: r["id"])

    def find_admin(self):
        admins = sorted(self.store.find("users", lambda r: bool(r.get("is_admin"))), key=lambda r: r["id"])
        return admins[0] if admins else None

    def update_user(self, user_id, username, password_hash, is_admin):
        return self.store.update_where("users", _by_id(user_id), {
            "username": username,
            "password_hash": password_hash,
            "is_admin": 1 if is_admin else 0,
        })

    def update_password(self, user_id, password_hash):
        return self.store.update_where("users", _by_id(user_id), {"password_hash": password_hash})

    def reset_admin_password(self, password_hash):
        return self.store.update_where("users", lambda r: bool(r.get("is_admin")), {"password_hash": password_hash})

    def delete_user(self, user_id):
        return self.store.delete_where("users", _by_id(user_id))

    def clear_users(self):
        return self.store.delete_where("users", lambda r: True)

    # ---- permissions ----
    def list_permissions(self):
        return sorted(self.store.list_table("permissions"), key=lambda r: r["id"])

    def get_permission_by_name(self, name):
        return self.store.find_one("permissions", name=name)

    def add_permission(self, name):
        return self.store.insert_into("permissions", {"name": name})

    def get_user_permissions(self, user_id):
        granted = {r["permission_id"] for r in self.store.find("user_permissions", user_id=int(user_id))}
        return [p["name"] for p in self.list_permissions() if p["id"] in granted]

    def assign_permission(self, user_id, permission_id):
        if self.store.find_one("user_permissions", user_id=int(user_id), permission_id=int(permission_id)):
            return 0
        self.store.insert_into("user_permissions", {"user_id": int(user_id), "permission_id": int(permission_id)})
        return 1

    def revoke_permission(self, user_id, permission_id):
        uid, pid = int(user_id), int(permission_id)
        return self.store.delete_where(
            "user_permissions", lambda r: r.get("user_id") == uid and r.get("permission_id") == pid
        )

    # ---- products ----
    def add_product(self, name, price, cost):
        return self.store.insert_into("products", {"name": str(name), "price": float(price), "cost": float(cost)})

    def list_products(self):
        return sorted(self.store.list_table("products"), key=lambda r: (r.get("name") or "", r["id"]))

    def get_product_by_id(self, product_id):
        return self.store.find_one("products", _by_id(product_id))

    def update_product(self, product_id, name, price, cost):
        return self.store.update_where("products", _by_id(product_id), {
            "name": str(name), "price": float(price), "cost": float(cost),
        })

    def delete_product(self, product_id):
        return self.store.delete_where("products", _by_id(product_id))

    # ---- sales ----
    def add_sale(self, sale):
        return self.store.insert_into("sales", {
            "sale_date": sale["sale_date"],
            "sale_time": sale["sale_time"],
            "total_amount": float(sale["total_amount"]),
            "payment_received": float(sale["payment_received"]),
            "change_given": float(sale["change_given"]),
            "business_name": sale.get("business_name"),
            "user_id": sale.get("user_id"),
        })

    def add_sale_item(self, sale_id, item):
        return self.store.insert_into("sale_items", {
            "sale_id": int(sale_id),
            "product_id": item.get("product_id"),
            "product_name": str(item["product_name"]),
            "quantity": int(item["quantity"]),
            "price_at_sale": float(item["price_at_sale"]),
        })

    def list_sales(self):
        return _newest_first(self.store.list_table("sales"), "sale_date", "sale_time")

    def get_sale_by_id(self, sale_id):
        return self.store.find_one("sales", _by_id(sale_id))

    def get_sale_items(self, sale_id):
        return sorted(self.store.find("sale_items", sale_id=int(sale_id)), key=lambda r: r["id"])

    def delete_sale(self, sale_id):
        return self.store.delete_where("sales", _by_id(sale_id))

    # ---- expenses ----
    def add_expense(self, expense):
        return self.store.insert_into("expenses", {
            "expense_date": expense["expense_date"],
            "expense_time": expense["expense_time"],
            "description": expense.get("description"),
            "amount": float(expense["amount"]),
        })

    def list_expenses(self):
        return _newest_first(self.store.list_table("expenses"), "expense_date", "expense_time")

    def get_expense_by_id(self, expense_id):
        return self.store.find_one("expenses", _by_id(expense_id))

    def update_expense(self, expense_id, description, amount):
        return self.store.update_where("expenses", _by_id(expense_id), {
            "description": description, "amount": float(amount),
        })

    def delete_expense(self, expense_id):
        return self.store.delete_where("expenses", _by_id(expense_id))

    # ---- costings ----
    def add_costing(self, costing):
        return self.store.insert_into("costings", {
            "name": str(costing["name"]),
            "total_cost": float(costing["total_cost"]),
            "costing_date": costing["costing_date"],
        })

    def add_costing_item(self, costing_id, item):
        return self.store.insert_into("costing_items", {
            "costing_id": int(costing_id),
            "item_name": str(item["item_name"]),
            "unit_of_measure": item.get("unit_of_measure"),
            "unit_price": float(item["unit_price"]),
            "quantity_used": float(item["quantity_used"]),
        })

    def list_costings(self):
        return _newest_first(self.store.list_table("costings"), "costing_date")

    def get_costing_by_id(self, costing_id):
        return self.store.find_one("costings", _by_id(costing_id))

    def get_costing_items(self, costing_id):
        return sorted(self.store.find("costing_items", costing_id=int(costing_id)), key=lambda r: r["id"])

    def delete_costing(self, costing_id):
        return self.store.delete_where("costings", _by_id(costing_id))

    # ---- inventory ----
    def list_inventory_items(self):
        return sorted(self.store.list_table("inventory_items"), key=lambda r: (r.get("name") or "", r["id"]))

    def get_inventory_item(self, item_id):
        return self.store.find_one("inventory_items", _by_id(item_id))

    # Stock and its movement log change together: the second write failing
    # undoes the first, and the store lock keeps other writers out meanwhile.
    def add_inventory_item(self, item):
        initial = float(item.get("stock") or 0)
        with self.store.lock:
            item_id = self.store.insert_into("inventory_items", {
                "name": item["name"],
                "sku": item.get("sku"),
                "unit": item.get("unit"),
                "stock": initial,
                "min_stock": float(item.get("min_stock") or 0),
                "created_at": item["created_at"],
            })
            if initial != 0:
                try:
                    self.store.insert_into("inventory_movements", {
                        "item_id": item_id,
                        "delta": initial,
                        "reason": item.get("initial_reason"),
                        "created_at": item["created_at"],
                    })
                except Exception:
                    self.store.delete_where("inventory_items", _by_id(item_id))
                    raise
        return item_id

    def adjust_inventory(self, item_id, delta, reason, created_at):
        with self.store.lock:
            current = self.get_inventory_item(item_id)
            if current is None:
                return 0
            movement_id = self.store.insert_into("inventory_movements", {
                "item_id": int(item_id),
                "delta": float(delta),
                "reason": reason,
                "created_at": created_at,
            })
            try:
                self.store.update_where("inventory_items", _by_id(item_id), {
                    "stock": float(current.get("stock") or 0) + float(delta),
                })
            except Exception:
                self.store.delete_where("inventory_movements", _by_id(movement_id))
                raise
        return 1

    def get_item_movements(self, item_id, limit: Optional[int]):
        rows = _newest_first(self.store.find("inventory_movements", item_id=int(item_id)), "created_at")
        return rows if limit is None else rows[: int(limit)]
