from __future__ import annotations

import abc
import importlib.util
import logging
from pathlib import Path
from typing import Any, Optional

from brunch_pos.config import BACKEND, DB_PATH, KV_STORE_PATH, SEED_DEMO_DATA

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class StorageBackend(abc.ABC):
    """
    One logical set of tables, whatever holds them.

    Rows go in and come out as plain dicts with the column names of
    brunch_pos.db.schema. Inserts return the new id, updates and deletes the
    number of rows touched (0 = no such id). Deleting a parent removes its
    cascading children.
    """

    name: str = ""

    # ---- lifecycle ----
    @abc.abstractmethod
    def open(self) -> Any:
        """Return the live storage handle, (re)opening it if needed."""

    @abc.abstractmethod
    def initialize(self) -> bool:
        """Create tables and seed catalog data once. True when it ran."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Drop in-memory state so the next call rebuilds it."""

    @abc.abstractmethod
    def ensure_inventory_tables(self) -> None: ...

    # ---- users ----
    @abc.abstractmethod
    def add_user(self, username: str, password_hash: str, is_admin: bool) -> int: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Optional[Row]: ...

    @abc.abstractmethod
    def get_user_by_id(self, user_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def list_users(self) -> list[Row]: ...

    @abc.abstractmethod
    def find_admin(self) -> Optional[Row]: ...

    @abc.abstractmethod
    def update_user(self, user_id: int, username: str, password_hash: str, is_admin: bool) -> int: ...

    @abc.abstractmethod
    def update_password(self, user_id: int, password_hash: str) -> int: ...

    @abc.abstractmethod
    def reset_admin_password(self, password_hash: str) -> int: ...

    @abc.abstractmethod
    def delete_user(self, user_id: int) -> int: ...

    @abc.abstractmethod
    def clear_users(self) -> int: ...

    # ---- permissions ----
    @abc.abstractmethod
    def list_permissions(self) -> list[Row]: ...

    @abc.abstractmethod
    def get_permission_by_name(self, name: str) -> Optional[Row]: ...

    @abc.abstractmethod
    def add_permission(self, name: str) -> int: ...

    @abc.abstractmethod
    def get_user_permissions(self, user_id: int) -> list[str]: ...

    @abc.abstractmethod
    def assign_permission(self, user_id: int, permission_id: int) -> int:
        """Grant; 1 when a row was added, 0 when it was already there."""

    @abc.abstractmethod
    def revoke_permission(self, user_id: int, permission_id: int) -> int: ...

    # ---- products ----
    @abc.abstractmethod
    def add_product(self, name: str, price: float, cost: float) -> int: ...

    @abc.abstractmethod
    def list_products(self) -> list[Row]:
        """All products sorted by name ascending."""

    @abc.abstractmethod
    def get_product_by_id(self, product_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def update_product(self, product_id: int, name: str, price: float, cost: float) -> int: ...

    @abc.abstractmethod
    def delete_product(self, product_id: int) -> int: ...

    # ---- sales ----
    @abc.abstractmethod
    def add_sale(self, sale: Row) -> int: ...

    @abc.abstractmethod
    def add_sale_item(self, sale_id: int, item: Row) -> int: ...

    @abc.abstractmethod
    def list_sales(self) -> list[Row]:
        """All sales, newest first by date then time."""

    @abc.abstractmethod
    def get_sale_by_id(self, sale_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def get_sale_items(self, sale_id: int) -> list[Row]: ...

    @abc.abstractmethod
    def delete_sale(self, sale_id: int) -> int: ...

    # ---- expenses ----
    @abc.abstractmethod
    def add_expense(self, expense: Row) -> int: ...

    @abc.abstractmethod
    def list_expenses(self) -> list[Row]: ...

    @abc.abstractmethod
    def get_expense_by_id(self, expense_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def update_expense(self, expense_id: int, description: str, amount: float) -> int: ...

    @abc.abstractmethod
    def delete_expense(self, expense_id: int) -> int: ...

    # ---- costings ----
    @abc.abstractmethod
    def add_costing(self, costing: Row) -> int: ...

    @abc.abstractmethod
    def add_costing_item(self, costing_id: int, item: Row) -> int: ...

    @abc.abstractmethod
    def list_costings(self) -> list[Row]: ...

    @abc.abstractmethod
    def get_costing_by_id(self, costing_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def get_costing_items(self, costing_id: int) -> list[Row]: ...

    @abc.abstractmethod
    def delete_costing(self, costing_id: int) -> int: ...

    # ---- inventory ----
    @abc.abstractmethod
    def list_inventory_items(self) -> list[Row]: ...

    @abc.abstractmethod
    def get_inventory_item(self, item_id: int) -> Optional[Row]: ...

    @abc.abstractmethod
    def add_inventory_item(self, item: Row) -> int: ...

    @abc.abstractmethod
    def adjust_inventory(self, item_id: int, delta: float, reason: Optional[str], created_at: str) -> int:
        """Apply delta to stock and record the movement; 0 when the item is missing."""

    @abc.abstractmethod
    def get_item_movements(self, item_id: int, limit: Optional[int]) -> list[Row]: ...


def sqlite_available() -> bool:
    """Capability probe: is an embedded SQLite engine usable in this interpreter?"""
    if importlib.util.find_spec("sqlite3") is None:
        return False
    import sqlite3

    try:
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("SELECT 1;").fetchone()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        logger.warning("Embedded SQLite probe failed: %s", exc)
        return False
    return True


def select_backend(
    kind: Optional[str] = None,
    db_path: Optional[Path] = None,
    kv_path: Optional[Path] = None,
    seed_demo: bool = SEED_DEMO_DATA,
) -> StorageBackend:
    """Pick the storage backend once at startup."""
    kind = (kind or BACKEND or "auto").lower()
    if kind == "auto":
        kind = "sqlite" if sqlite_available() else "kv"

    if kind == "sqlite":
        from brunch_pos.db.dao import SqliteBackend
        from brunch_pos.db.database import Database

        logger.info("Using native SQLite backend")
        return SqliteBackend(Database(db_path or DB_PATH))

    if kind == "kv":
        from brunch_pos.db.kv_backend import KeyValueBackend
        from brunch_pos.db.kv_store import JsonFileStorage, KeyValueTableStore

        logger.info("Using key/value table backend")
        store = KeyValueTableStore(JsonFileStorage(kv_path or KV_STORE_PATH))
        return KeyValueBackend(store, seed_demo=seed_demo)

    raise ValueError(f"Unknown storage backend: {kind!r}")
