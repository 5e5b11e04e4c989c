from __future__ import annotations

from typing import Any, Optional

from brunch_pos.db.backend import Row, StorageBackend
from brunch_pos.db.database import Database
from brunch_pos.db.schema import create_inventory_schema


# =============================================================================
# USER DATA ACCESS OBJECT
# =============================================================================

class UserDAO:
    """
    Database access for users table.
    Columns: id, username, password_hash, is_admin
    """

    def __init__(self, db: Database):
        self.db = db

    def get_by_username(self, username: str) -> Optional[Row]:
        return self.db.fetchone(
            "SELECT id, username, password_hash, is_admin FROM users WHERE username=?;",
            (username,),
        )

    def get_by_id(self, user_id: int) -> Optional[Row]:
        return self.db.fetchone(
            "SELECT id, username, password_hash, is_admin FROM users WHERE id=?;",
            (int(user_id),),
        )

    def first_admin(self) -> Optional[Row]:
        return self.db.fetchone(
            "SELECT id, username, password_hash, is_admin FROM users WHERE is_admin=1 ORDER BY id LIMIT 1;"
        )

    def list_users(self) -> list[Row]:
        return self.db.fetchall("SELECT id, username, password_hash, is_admin FROM users ORDER BY id;")

    def create(self, username: str, password_hash: str, is_admin: bool) -> int:
        return self.db.execute_id(
            "INSERT INTO users(username, password_hash, is_admin) VALUES(?,?,?);",
            (username, password_hash, 1 if is_admin else 0),
        )

    def update(self, user_id: int, username: str, password_hash: str, is_admin: bool) -> int:
        return self.db.execute(
            "UPDATE users SET username=?, password_hash=?, is_admin=? WHERE id=?;",
            (username, password_hash, 1 if is_admin else 0, int(user_id)),
        )

    def update_password(self, user_id: int, password_hash: str) -> int:
        return self.db.execute(
            "UPDATE users SET password_hash=? WHERE id=?;",
            (password_hash, int(user_id)),
        )

    def update_admin_passwords(self, password_hash: str) -> int:
        return self.db.execute("UPDATE users SET password_hash=? WHERE is_admin=1;", (password_hash,))

    def delete(self, user_id: int) -> int:
        return self.db.execute("DELETE FROM users WHERE id=?;", (int(user_id),))

    def delete_all(self) -> int:
        return self.db.execute("DELETE FROM users;")


# =============================================================================
# PERMISSION DATA ACCESS OBJECT
# =============================================================================

class PermissionDAO:
    """Database access for permissions and the user_permissions join table."""

    def __init__(self, db: Database):
        self.db = db

    def list_permissions(self) -> list[Row]:
        return self.db.fetchall("SELECT id, name FROM permissions ORDER BY id;")

    def get_by_name(self, name: str) -> Optional[Row]:
        return self.db.fetchone("SELECT id, name FROM permissions WHERE name=?;", (name,))

    def create(self, name: str) -> int:
        return self.db.execute_id("INSERT INTO permissions(name) VALUES(?);", (name,))

    def names_for_user(self, user_id: int) -> list[str]:
        rows = self.db.fetchall(
            """
            SELECT p.name
            FROM user_permissions up
            JOIN permissions p ON up.permission_id = p.id
            WHERE up.user_id=?
            ORDER BY p.id;
            """,
            (int(user_id),),
        )
        return [r["name"] for r in rows]

    def grant(self, user_id: int, permission_id: int) -> int:
        return self.db.execute(
            "INSERT OR IGNORE INTO user_permissions(user_id, permission_id) VALUES(?,?);",
            (int(user_id), int(permission_id)),
        )

    def revoke(self, user_id: int, permission_id: int) -> int:
        return self.db.execute(
            "DELETE FROM user_permissions WHERE user_id=? AND permission_id=?;",
            (int(user_id), int(permission_id)),
        )


# =============================================================================
# PRODUCT DATA ACCESS OBJECT
# =============================================================================

class ProductDAO:
    """
    Database access for products table.
    Columns: id, name, price, cost
    """

    def __init__(self, db: Database):
        self.db = db

    def list_all(self) -> list[Row]:
        return self.db.fetchall("SELECT id, name, price, cost FROM products ORDER BY name ASC, id ASC;")

    def get(self, product_id: int) -> Optional[Row]:
        return self.db.fetchone("SELECT id, name, price, cost FROM products WHERE id=?;", (int(product_id),))

    def create(self, name: str, price: float, cost: float) -> int:
        return self.db.execute_id(
            "INSERT INTO products(name, price, cost) VALUES(?,?,?);",
            (str(name), float(price), float(cost)),
        )

    def update(self, product_id: int, name: str, price: float, cost: float) -> int:
        return self.db.execute(
            "UPDATE products SET name=?, price=?, cost=? WHERE id=?;",
            (str(name), float(price), float(cost), int(product_id)),
        )

    def delete(self, product_id: int) -> int:
        return self.db.execute("DELETE FROM products WHERE id=?;", (int(product_id),))


# =============================================================================
# SALE DATA ACCESS OBJECT
# =============================================================================

class SaleDAO:
    """
    Database access for sales and sale_items tables.
    sales: id, sale_date, sale_time, total_amount, payment_received, change_given,
           business_name, user_id
    sale_items: id, sale_id, product_id, product_name, quantity, price_at_sale
    """

    def __init__(self, db: Database):
        self.db = db

    def insert_sale(self, sale: dict[str, Any]) -> int:
        return self.db.execute_id(
            """
            INSERT INTO sales(
                sale_date, sale_time, total_amount, payment_received,
                change_given, business_name, user_id
            ) VALUES(?,?,?,?,?,?,?);
            """,
            (
                sale["sale_date"],
                sale["sale_time"],
                float(sale["total_amount"]),
                float(sale["payment_received"]),
                float(sale["change_given"]),
                sale.get("business_name"),
                sale.get("user_id"),
            ),
        )

    def insert_item(self, sale_id: int, item: dict[str, Any]) -> int:
        return self.db.execute_id(
            """
            INSERT INTO sale_items(sale_id, product_id, product_name, quantity, price_at_sale)
            VALUES(?,?,?,?,?);
            """,
            (
                int(sale_id),
                item.get("product_id"),
                str(item["product_name"]),
                int(item["quantity"]),
                float(item["price_at_sale"]),
            ),
        )

    def list_sales(self) -> list[Row]:
        return self.db.fetchall("SELECT * FROM sales ORDER BY sale_date DESC, sale_time DESC, id DESC;")

    def get_sale(self, sale_id: int) -> Optional[Row]:
        return self.db.fetchone("SELECT * FROM sales WHERE id=?;", (int(sale_id),))

    def get_items(self, sale_id: int) -> list[Row]:
        return self.db.fetchall("SELECT * FROM sale_items WHERE sale_id=? ORDER BY id;", (int(sale_id),))

    def delete_sale(self, sale_id: int) -> int:
        """Delete sale; its items go with it (ON DELETE CASCADE)."""
        return self.db.execute("DELETE FROM sales WHERE id=?;", (int(sale_id),))


# =============================================================================
# EXPENSE DATA ACCESS OBJECT
# =============================================================================

class ExpenseDAO:
    """
    Database access for expenses table.
    Columns: id, expense_date, expense_time, description, amount
    """

    def __init__(self, db: Database):
        self.db = db

    def create(self, expense: dict[str, Any]) -> int:
        return self.db.execute_id(
            "INSERT INTO expenses(expense_date, expense_time, description, amount) VALUES(?,?,?,?);",
            (expense["expense_date"], expense["expense_time"], expense.get("description"), float(expense["amount"])),
        )

    def list_all(self) -> list[Row]:
        return self.db.fetchall(
            "SELECT * FROM expenses ORDER BY expense_date DESC, expense_time DESC, id DESC;"
        )

    def get(self, expense_id: int) -> Optional[Row]:
        return self.db.fetchone("SELECT * FROM expenses WHERE id=?;", (int(expense_id),))

    def update(self, expense_id: int, description: str, amount: float) -> int:
        return self.db.execute(
            "UPDATE expenses SET description=?, amount=? WHERE id=?;",
            (description, float(amount), int(expense_id)),
        )

    def delete(self, expense_id: int) -> int:
        return self.db.execute("DELETE FROM expenses WHERE id=?;", (int(expense_id),))


# =============================================================================
# COSTING DATA ACCESS OBJECT
# =============================================================================

class CostingDAO:
    """
    Database access for costings and costing_items tables.
    costings: id, name, total_cost, costing_date
    costing_items: id, costing_id, item_name, unit_of_measure, unit_price, quantity_used
    """

    def __init__(self, db: Database):
        self.db = db

    def create(self, costing: dict[str, Any]) -> int:
        return self.db.execute_id(
            "INSERT INTO costings(name, total_cost, costing_date) VALUES(?,?,?);",
            (str(costing["name"]), float(costing["total_cost"]), costing["costing_date"]),
        )

    def insert_item(self, costing_id: int, item: dict[str, Any]) -> int:
        return self.db.execute_id(
            """
            INSERT INTO costing_items(costing_id, item_name, unit_of_measure, unit_price, quantity_used)
            VALUES(?,?,?,?,?);
            """,
            (
                int(costing_id),
                str(item["item_name"]),
                item.get("unit_of_measure"),
                float(item["unit_price"]),
                float(item["quantity_used"]),
            ),
        )

    def list_all(self) -> list[Row]:
        return self.db.fetchall("SELECT * FROM costings ORDER BY costing_date DESC, id DESC;")

    def get(self, costing_id: int) -> Optional[Row]:
        return self.db.fetchone("SELECT * FROM costings WHERE id=?;", (int(costing_id),))

    def get_items(self, costing_id: int) -> list[Row]:
        return self.db.fetchall(
            "SELECT * FROM costing_items WHERE costing_id=? ORDER BY id;", (int(costing_id),)
        )

    def delete(self, costing_id: int) -> int:
        return self.db.execute("DELETE FROM costings WHERE id=?;", (int(costing_id),))


# =============================================================================
# INVENTORY DATA ACCESS OBJECT
# =============================================================================

class InventoryDAO:
    """
    Database access for inventory_items and inventory_movements.
    stock is a running balance; every change to it writes a movement row.
    """

    def __init__(self, db: Database):
        self.db = db

    def ensure_tables(self) -> None:
        create_inventory_schema(self.db.get_connection())

    def list_items(self) -> list[Row]:
        return self.db.fetchall("SELECT * FROM inventory_items ORDER BY name ASC, id ASC;")

    def get_item(self, item_id: int) -> Optional[Row]:
        return self.db.fetchone("SELECT * FROM inventory_items WHERE id=?;", (int(item_id),))

    def create_item(self, item: dict[str, Any]) -> int:
        initial = float(item.get("stock") or 0)
        with self.db.transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO inventory_items(name, sku, unit, stock, min_stock, created_at)
                VALUES(?,?,?,?,?,?);
                """,
                (item["name"], item.get("sku"), item.get("unit"), initial,
                 float(item.get("min_stock") or 0), item["created_at"]),
            )
            item_id = int(cur.lastrowid)
            if initial != 0:
                conn.execute(
                    "INSERT INTO inventory_movements(item_id, delta, reason, created_at) VALUES(?,?,?,?);",
                    (item_id, initial, item.get("initial_reason"), item["created_at"]),
                )
        return item_id

    def adjust(self, item_id: int, delta: float, reason: Optional[str], created_at: str) -> int:
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE inventory_items SET stock = stock + ? WHERE id=?;",
                (float(delta), int(item_id)),
            )
            if cur.rowcount == 0:
                return 0
            conn.execute(
                "INSERT INTO inventory_movements(item_id, delta, reason, created_at) VALUES(?,?,?,?);",
                (int(item_id), float(delta), reason, created_at),
            )
        return 1

    def movements(self, item_id: int, limit: Optional[int]) -> list[Row]:
        sql = "SELECT * FROM inventory_movements WHERE item_id=? ORDER BY created_at DESC, id DESC"
        params: list[Any] = [int(item_id)]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        return self.db.fetchall(sql + ";", params)


# =============================================================================
# NATIVE BACKEND
# =============================================================================

class SqliteBackend(StorageBackend):
    """StorageBackend over the shared SQLite connection."""

    name = "sqlite"

    def __init__(self, db: Database):
        self.db = db
        self.users = UserDAO(db)
        self.permissions = PermissionDAO(db)
        self.products = ProductDAO(db)
        self.sales = SaleDAO(db)
        self.expenses = ExpenseDAO(db)
        self.costings = CostingDAO(db)
        self.inventory = InventoryDAO(db)
        self._inventory_ready = False

    # ---- lifecycle ----
    def open(self):
        return self.db.get_connection()

    def initialize(self) -> bool:
        ran = self.db.initialize()
        if ran:
            self._inventory_ready = False
        return ran

    def reset(self) -> None:
        self.db.reset()
        self._inventory_ready = False

    def ensure_inventory_tables(self) -> None:
        if self._inventory_ready and self.db.is_initialized:
            return
        self.inventory.ensure_tables()
        self._inventory_ready = True

    # ---- users ----
    def add_user(self, username, password_hash, is_admin):
        return self.users.create(username, password_hash, is_admin)

    def get_user_by_username(self, username):
        return self.users.get_by_username(username)

    def get_user_by_id(self, user_id):
        return self.users.get_by_id(user_id)

    def list_users(self):
        return self.users.list_users()

    def find_admin(self):
        return self.users.first_admin()

    def update_user(self, user_id, username, password_hash, is_admin):
        return self.users.update(user_id, username, password_hash, is_admin)

    def update_password(self, user_id, password_hash):
        return self.users.update_password(user_id, password_hash)

    def reset_admin_password(self, password_hash):
        return self.users.update_admin_passwords(password_hash)

    def delete_user(self, user_id):
        return self.users.delete(user_id)

    def clear_users(self):
        return self.users.delete_all()

    # ---- permissions ----
    def list_permissions(self):
        return self.permissions.list_permissions()

    def get_permission_by_name(self, name):
        return self.permissions.get_by_name(name)

    def add_permission(self, name):
        return self.permissions.create(name)

    def get_user_permissions(self, user_id):
        return self.permissions.names_for_user(user_id)

    def assign_permission(self, user_id, permission_id):
        return self.permissions.grant(user_id, permission_id)

    def revoke_permission(self, user_id, permission_id):
        return self.permissions.revoke(user_id, permission_id)

    # ---- products ----
    def add_product(self, name, price, cost):
        return self.products.create(name, price, cost)

    def list_products(self):
        return self.products.list_all()

    def get_product_by_id(self, product_id):
        return self.products.get(product_id)

    def update_product(self, product_id, name, price, cost):
        return self.products.update(product_id, name, price, cost)

    def delete_product(self, product_id):
        return self.products.delete(product_id)

    # ---- sales ----
    def add_sale(self, sale):
        return self.sales.insert_sale(sale)

    def add_sale_item(self, sale_id, item):
        return self.sales.insert_item(sale_id, item)

    def list_sales(self):
        return self.sales.list_sales()

    def get_sale_by_id(self, sale_id):
        return self.sales.get_sale(sale_id)

    def get_sale_items(self, sale_id):
        return self.sales.get_items(sale_id)

    def delete_sale(self, sale_id):
        return self.sales.delete_sale(sale_id)

    # ---- expenses ----
    def add_expense(self, expense):
        return self.expenses.create(expense)

    def list_expenses(self):
        return self.expenses.list_all()

    def get_expense_by_id(self, expense_id):
        return self.expenses.get(expense_id)

    def update_expense(self, expense_id, description, amount):
        return self.expenses.update(expense_id, description, amount)

    def delete_expense(self, expense_id):
        return self.expenses.delete(expense_id)

    # ---- costings ----
    def add_costing(self, costing):
        return self.costings.create(costing)

    def add_costing_item(self, costing_id, item):
        return self.costings.insert_item(costing_id, item)

    def list_costings(self):
        return self.costings.list_all()

    def get_costing_by_id(self, costing_id):
        return self.costings.get(costing_id)

    def get_costing_items(self, costing_id):
        return self.costings.get_items(costing_id)

    def delete_costing(self, costing_id):
        return self.costings.delete(costing_id)

    # ---- inventory ----
    def list_inventory_items(self):
        return self.inventory.list_items()

    def get_inventory_item(self, item_id):
        return self.inventory.get_item(item_id)

    def add_inventory_item(self, item):
        return self.inventory.create_item(item)

    def adjust_inventory(self, item_id, delta, reason, created_at):
        return self.inventory.adjust(item_id, delta, reason, created_at)

    def get_item_movements(self, item_id, limit):
        return self.inventory.movements(item_id, limit)
