from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from brunch_pos.config import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME
from brunch_pos.constants import INITIAL_STOCK_REASON
from brunch_pos.db.backend import StorageBackend, select_backend
from brunch_pos.db.database import is_corruption_error
from brunch_pos.errors import StorageError, UsernameTakenError
from brunch_pos.models.costing import Costing
from brunch_pos.models.costing_item import CostingItem
from brunch_pos.models.expense import Expense
from brunch_pos.models.inventory_item import InventoryItem
from brunch_pos.models.inventory_movement import InventoryMovement
from brunch_pos.models.permission import Permission
from brunch_pos.models.product import Product
from brunch_pos.models.sale import Sale
from brunch_pos.models.sale_item import SaleItem
from brunch_pos.models.user import User
from brunch_pos.utils import hash_password, local_date, local_time, local_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataService:
    """
    The one place screens and services go through to reach storage.

    Which backend is active is decided once (select_backend) and never leaks
    out of here. Conventions:
      - inserts return the new id
      - updates / deletes return the affected count, 0 meaning "no such id"
      - get_all_* never raise: failures are logged and give []
      - creates / updates / deletes always propagate errors
    """

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend or select_backend()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def open_connection(self) -> Any:
        return self.backend.open()

    def initialize(self) -> bool:
        """Schema, catalog and default admin. Cheap no-op once done."""
        ran = self.backend.initialize()
        if ran:
            self._seed_admin(DEFAULT_ADMIN_USERNAME, hash_password(DEFAULT_ADMIN_PASSWORD))
        return ran

    def reset(self) -> None:
        self.backend.reset()

    def _ready(self) -> StorageBackend:
        self.initialize()
        return self.backend

    def _safe_list(self, what: str, fetch: Callable[[], list[T]]) -> list[T]:
        try:
            return fetch()
        except Exception as exc:
            logger.warning("Could not load %s, returning empty list: %s", what, exc)
            if isinstance(exc, StorageError) or is_corruption_error(exc):
                self.reset()
            return []

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #
    def add_user(self, username: str, password_hash: str, is_admin: bool = False) -> int:
        b = self._ready()
        if b.get_user_by_username(username) is not None:
            raise UsernameTakenError(username)
        return b.add_user(username, password_hash, is_admin)

    def get_user_by_username(self, username: str) -> Optional[User]:
        r = self._ready().get_user_by_username(username)
        return User.from_row(r) if r else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        r = self._ready().get_user_by_id(user_id)
        return User.from_row(r) if r else None

    def get_all_users(self) -> list[User]:
        return self._safe_list("users", lambda: [User.from_row(r) for r in self._ready().list_users()])

    def update_user(self, user_id: int, username: str, password_hash: str, is_admin: bool) -> int:
        b = self._ready()
        other = b.get_user_by_username(username)
        if other is not None and int(other["id"]) != int(user_id):
            raise UsernameTakenError(username)
        return b.update_user(user_id, username, password_hash, is_admin)

    def update_user_password(self, user_id: int, password_hash: str) -> int:
        return self._ready().update_password(user_id, password_hash)

    def delete_user(self, user_id: int) -> int:
        return self._ready().delete_user(user_id)

    # ---- maintenance ----
    def reset_admin_password(self, password_hash: str) -> int:
        """Overwrite the hash of every admin. Creates nobody."""
        return self._ready().reset_admin_password(password_hash)

    def clear_all_users(self) -> int:
        return self._ready().clear_users()

    def create_fresh_admin(self, username: str, password_hash: str) -> int:
        return self.add_user(username, password_hash, is_admin=True)

    def create_user_with_all_permissions(self, username: str, password_hash: str) -> int:
        user_id = self.add_user(username, password_hash, is_admin=False)
        for p in self._ready().list_permissions():
            self.backend.assign_permission(user_id, p["id"])
        return user_id

    def seed_admin_user(self, username: str, password_hash: str) -> Optional[User]:
        """
        Create the first administrator with every permission.
        No-op (None) when any admin already exists or the username is taken.
        """
        self._ready()
        return self._seed_admin(username, password_hash)

    def _seed_admin(self, username: str, password_hash: str) -> Optional[User]:
        b = self.backend
        if b.find_admin() is not None:
            return None
        if b.get_user_by_username(username) is not None:
            logger.warning("Cannot seed admin: username '%s' belongs to a regular user", username)
            return None
        user_id = b.add_user(username, password_hash, True)
        for p in b.list_permissions():
            b.assign_permission(user_id, p["id"])
        logger.info("Seeded administrator '%s'", username)
        return User.from_row(b.get_user_by_id(user_id))

    # ------------------------------------------------------------------ #
    # Permissions
    # ------------------------------------------------------------------ #
    def get_all_permissions(self) -> list[Permission]:
        return self._safe_list(
            "permissions", lambda: [Permission.from_row(r) for r in self._ready().list_permissions()]
        )

    def get_permission_by_name(self, name: str) -> Optional[Permission]:
        r = self._ready().get_permission_by_name(name)
        return Permission.from_row(r) if r else None

    def add_permission(self, name: str) -> int:
        return self._ready().add_permission(name)

    def get_user_permissions(self, user_id: int) -> list[str]:
        return self._safe_list("user permissions", lambda: self._ready().get_user_permissions(user_id))

    def assign_permission_to_user(self, user_id: int, permission_id: int) -> int:
        """Idempotent: a second grant of the same pair changes nothing and returns 0."""
        return self._ready().assign_permission(user_id, permission_id)

    def revoke_permission_from_user(self, user_id: int, permission_id: int) -> int:
        return self._ready().revoke_permission(user_id, permission_id)

    # ------------------------------------------------------------------ #
    # Products
    # ------------------------------------------------------------------ #
    def add_product(self, name: str, price: float, cost: float) -> int:
        return self._ready().add_product(name, price, cost)

    def get_all_products(self) -> list[Product]:
        return self._safe_list("products", lambda: [Product.from_row(r) for r in self._ready().list_products()])

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        r = self._ready().get_product_by_id(product_id)
        return Product.from_row(r) if r else None

    def update_product(self, product_id: int, name: str, price: float, cost: float) -> int:
        return self._ready().update_product(product_id, name, price, cost)

    def delete_product(self, product_id: int) -> int:
        return self._ready().delete_product(product_id)

    # ------------------------------------------------------------------ #
    # Sales
    # ------------------------------------------------------------------ #
    def add_sale(
        self,
        total_amount: float,
        payment_received: float,
        change_given: float,
        business_name: Optional[str] = None,
        user_id: Optional[int] = None,
        sale_date: Optional[str] = None,
        sale_time: Optional[str] = None,
    ) -> int:
        return self._ready().add_sale({
            "sale_date": sale_date or local_date(),
            "sale_time": sale_time or local_time(),
            "total_amount": total_amount,
            "payment_received": payment_received,
            "change_given": change_given,
            "business_name": business_name,
            "user_id": user_id,
        })

    def add_sale_items(self, sale_id: int, items: Iterable[dict[str, Any]]) -> list[int]:
        """Insert items one by one under sale_id. Not atomic: a failure keeps earlier rows."""
        items = list(items)
        if not items:
            return []
        b = self._ready()
        return [b.add_sale_item(sale_id, it) for it in items]

    def get_all_sales(self) -> list[Sale]:
        return self._safe_list("sales", lambda: [Sale.from_row(r) for r in self._ready().list_sales()])

    def get_sale_by_id(self, sale_id: int) -> Optional[Sale]:
        r = self._ready().get_sale_by_id(sale_id)
        return Sale.from_row(r) if r else None

    def get_sale_items(self, sale_id: int) -> list[SaleItem]:
        return self._safe_list(
            "sale items", lambda: [SaleItem.from_row(r) for r in self._ready().get_sale_items(sale_id)]
        )

    def delete_sale(self, sale_id: int) -> int:
        return self._ready().delete_sale(sale_id)

    # ------------------------------------------------------------------ #
    # Expenses
    # ------------------------------------------------------------------ #
    def add_expense(
        self,
        description: str,
        amount: float,
        expense_date: Optional[str] = None,
        expense_time: Optional[str] = None,
    ) -> int:
        return self._ready().add_expense({
            "expense_date": expense_date or local_date(),
            "expense_time": expense_time or local_time(),
            "description": description,
            "amount": amount,
        })

    def get_all_expenses(self) -> list[Expense]:
        return self._safe_list("expenses", lambda: [Expense.from_row(r) for r in self._ready().list_expenses()])

    def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:
        r = self._ready().get_expense_by_id(expense_id)
        return Expense.from_row(r) if r else None

    def update_expense(self, expense_id: int, description: str, amount: float) -> int:
        return self._ready().update_expense(expense_id, description, amount)

    def delete_expense(self, expense_id: int) -> int:
        return self._ready().delete_expense(expense_id)

    # ------------------------------------------------------------------ #
    # Costings
    # ------------------------------------------------------------------ #
    def add_costing(self, name: str, total_cost: float, costing_date: Optional[str] = None) -> int:
        return self._ready().add_costing({
            "name": name,
            "total_cost": total_cost,
            "costing_date": costing_date or local_date(),
        })

    def add_costing_items(self, costing_id: int, items: Iterable[dict[str, Any]]) -> list[int]:
        items = list(items)
        if not items:
            return []
        b = self._ready()
        return [b.add_costing_item(costing_id, it) for it in items]

    def get_all_costings(self) -> list[Costing]:
        return self._safe_list("costings", lambda: [Costing.from_row(r) for r in self._ready().list_costings()])

    def get_costing_by_id(self, costing_id: int) -> Optional[Costing]:
        r = self._ready().get_costing_by_id(costing_id)
        return Costing.from_row(r) if r else None

    def get_costing_items(self, costing_id: int) -> list[CostingItem]:
        return self._safe_list(
            "costing items", lambda: [CostingItem.from_row(r) for r in self._ready().get_costing_items(costing_id)]
        )

    def delete_costing(self, costing_id: int) -> int:
        return self._ready().delete_costing(costing_id)

    # ------------------------------------------------------------------ #
    # Inventory (tables created on first use)
    # ------------------------------------------------------------------ #
    def ensure_inventory_tables(self) -> None:
        self._ready().ensure_inventory_tables()

    def _inventory(self) -> StorageBackend:
        b = self._ready()
        b.ensure_inventory_tables()
        return b

    def get_all_inventory_items(self) -> list[InventoryItem]:
        return self._safe_list(
            "inventory items",
            lambda: [InventoryItem.from_row(r) for r in self._inventory().list_inventory_items()],
        )

    def get_inventory_item(self, item_id: int) -> Optional[InventoryItem]:
        r = self._inventory().get_inventory_item(item_id)
        return InventoryItem.from_row(r) if r else None

    def add_inventory_item(
        self,
        name: str,
        sku: Optional[str] = None,
        unit: Optional[str] = None,
        stock: float = 0,
        min_stock: float = 0,
    ) -> int:
        """A nonzero opening stock is recorded as the item's first movement."""
        return self._inventory().add_inventory_item({
            "name": name,
            "sku": sku or None,
            "unit": unit,
            "stock": float(stock or 0),
            "min_stock": float(min_stock or 0),
            "created_at": local_timestamp(),
            "initial_reason": INITIAL_STOCK_REASON,
        })

    def adjust_inventory(self, item_id: int, delta: float, reason: Optional[str] = None) -> int:
        """Move stock by delta and log the movement. 0 when the item does not exist."""
        return self._inventory().adjust_inventory(item_id, float(delta), reason, local_timestamp())

    def get_item_movements(self, item_id: int, limit: Optional[int] = 50) -> list[InventoryMovement]:
        return self._safe_list(
            "inventory movements",
            lambda: [InventoryMovement.from_row(r) for r in self._inventory().get_item_movements(item_id, limit)],
        )
