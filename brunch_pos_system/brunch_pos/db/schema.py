from __future__ import annotations

import logging
import sqlite3

from brunch_pos.constants import ALL_PERMISSION_NAMES

logger = logging.getLogger(__name__)

# Bumped whenever a migration in Database._migrate_if_needed is added.
SCHEMA_VERSION = 2

ALL_SCHEMAS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS permissions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        is_admin BOOLEAN NOT NULL DEFAULT 0
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS user_permissions (
        user_id INTEGER,
        permission_id INTEGER,
        PRIMARY KEY (user_id, permission_id),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        FOREIGN KEY (permission_id) REFERENCES permissions(id) ON DELETE CASCADE
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        price REAL NOT NULL,
        cost REAL NOT NULL
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS sales (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sale_date TEXT NOT NULL,
        sale_time TEXT NOT NULL,
        total_amount REAL NOT NULL,
        payment_received REAL NOT NULL,
        change_given REAL NOT NULL,
        business_name TEXT,
        user_id INTEGER,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    """,

    # product_id carries no foreign key: product_name / price_at_sale are a
    # point-in-time copy that outlives the product row.
    """
    CREATE TABLE IF NOT EXISTS sale_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sale_id INTEGER NOT NULL,
        product_id INTEGER,
        product_name TEXT NOT NULL,
        quantity INTEGER NOT NULL,
        price_at_sale REAL NOT NULL,
        FOREIGN KEY (sale_id) REFERENCES sales(id) ON DELETE CASCADE
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        expense_date TEXT NOT NULL,
        expense_time TEXT NOT NULL,
        description TEXT,
        amount REAL NOT NULL
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS costings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        total_cost REAL NOT NULL,
        costing_date TEXT NOT NULL
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS costing_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        costing_id INTEGER NOT NULL,
        item_name TEXT NOT NULL,
        unit_of_measure TEXT,
        unit_price REAL NOT NULL,
        quantity_used REAL NOT NULL,
        FOREIGN KEY (costing_id) REFERENCES costings(id) ON DELETE CASCADE
    );
    """,
]

INVENTORY_SCHEMAS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS inventory_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        sku TEXT UNIQUE,
        unit TEXT,
        stock REAL NOT NULL DEFAULT 0,
        min_stock REAL NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (datetime('now','localtime'))
    );
    """,

    """
    CREATE TABLE IF NOT EXISTS inventory_movements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_id INTEGER NOT NULL,
        delta REAL NOT NULL,
        reason TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now','localtime')),
        FOREIGN KEY (item_id) REFERENCES inventory_items(id) ON DELETE CASCADE
    );
    """,
]

INDEX_STATEMENTS: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_products_name ON products(name);",
    "CREATE INDEX IF NOT EXISTS idx_sales_datetime ON sales(sale_date, sale_time);",
    "CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id);",
    "CREATE INDEX IF NOT EXISTS idx_expenses_datetime ON expenses(expense_date, expense_time);",
    "CREATE INDEX IF NOT EXISTS idx_costing_items_costing ON costing_items(costing_id);",
]

INVENTORY_INDEX_STATEMENTS: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_inventory_movements_item ON inventory_movements(item_id);",
]


# =============================================================================
# TABLE METADATA
# The key/value backend has no DDL, so it enforces the same rules from here.
# =============================================================================

CORE_TABLES: list[str] = [
    "permissions",
    "users",
    "user_permissions",
    "products",
    "sales",
    "sale_items",
    "expenses",
    "costings",
    "costing_items",
]

INVENTORY_TABLES: list[str] = ["inventory_items", "inventory_movements"]

TABLE_NAMES: list[str] = CORE_TABLES + INVENTORY_TABLES

# Tables keyed by their columns instead of an allocated integer id
COMPOSITE_KEY_TABLES: dict[str, tuple[str, ...]] = {
    "user_permissions": ("user_id", "permission_id"),
}

UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "permissions": [("name",)],
    "users": [("username",)],
    "user_permissions": [("user_id", "permission_id")],
    "inventory_items": [("sku",)],
}

# (child table, child column, parent table, on delete)
# "RESTRICT" mirrors SQLite's default NO ACTION with foreign_keys = ON.
FOREIGN_KEYS: list[tuple[str, str, str, str]] = [
    ("user_permissions", "user_id", "users", "CASCADE"),
    ("user_permissions", "permission_id", "permissions", "CASCADE"),
    ("sales", "user_id", "users", "RESTRICT"),
    ("sale_items", "sale_id", "sales", "CASCADE"),
    ("costing_items", "costing_id", "costings", "CASCADE"),
    ("inventory_movements", "item_id", "inventory_items", "CASCADE"),
]


# =============================================================================
# DDL RUNNERS
# =============================================================================

def create_schema(conn: sqlite3.Connection) -> None:
    """Create all core tables and indexes. Safe on every startup; errors propagate."""
    for stmt in ALL_SCHEMAS:
        conn.execute(stmt)
    for stmt in INDEX_STATEMENTS:
        conn.execute(stmt)
    conn.commit()


def create_inventory_schema(conn: sqlite3.Connection) -> None:
    for stmt in INVENTORY_SCHEMAS:
        conn.execute(stmt)
    for stmt in INVENTORY_INDEX_STATEMENTS:
        conn.execute(stmt)
    conn.commit()


def seed_permissions(conn: sqlite3.Connection) -> int:
    """Insert the permission catalog into an empty permissions table. Returns rows added."""
    r = conn.execute("SELECT COUNT(*) AS c FROM permissions;").fetchone()
    if r and int(r[0]) > 0:
        return 0
    conn.executemany(
        "INSERT INTO permissions(name) VALUES(?);",
        [(name,) for name in ALL_PERMISSION_NAMES],
    )
    conn.commit()
    logger.info("Seeded %d permissions", len(ALL_PERMISSION_NAMES))
    return len(ALL_PERMISSION_NAMES)
