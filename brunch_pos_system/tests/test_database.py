# Connection manager: open / probe / reopen, the concurrent-open guard,
# corruption recovery and in-place migrations.

import sqlite3
import threading
import time

import pytest

from brunch_pos.db.database import ConnectionState, Database, is_corruption_error
from brunch_pos.db.schema import SCHEMA_VERSION
from brunch_pos.errors import ConstraintViolationError, DatabaseOpenError


def _table_names(db: Database) -> set[str]:
    return {r["name"] for r in db.fetchall("SELECT name FROM sqlite_master WHERE type='table';")}


class TestLifecycle:
    def test_get_connection_reuses_live_handle(self, database):
        first = database.get_connection()
        assert database.get_connection() is first
        assert database.state is ConnectionState.READY

    def test_initialize_runs_once(self, database):
        assert database.initialize() is True
        assert database.initialize() is False
        assert "users" in _table_names(database)
        assert database.fetchone("SELECT COUNT(*) AS c FROM permissions;")["c"] == 24

    def test_reset_forces_rebuild(self, database):
        database.initialize()
        first = database.get_connection()
        database.reset()
        assert database.state is ConnectionState.CLOSED
        assert not database.is_initialized
        assert database.get_connection() is not first
        assert database.initialize() is True

    def test_dead_connection_is_replaced(self, database):
        first = database.get_connection()
        first.close()
        second = database.get_connection()
        assert second is not first
        assert second.execute("SELECT 1;").fetchone()[0] == 1

    def test_pragmas_applied(self, database):
        conn = database.get_connection()
        assert conn.execute("PRAGMA foreign_keys;").fetchone()[0] == 1
        assert conn.execute("PRAGMA journal_mode;").fetchone()[0].lower() == "wal"


class TestConcurrentOpen:
    def test_parallel_callers_open_the_file_once(self, database, monkeypatch):
        """
        SCENARIO: several threads ask for the connection while it is still opening
        EXPECTED: one open, everybody gets the same handle
        """
        calls = []
        real_open = database._open_connection

        def slow_open():
            calls.append(1)
            time.sleep(0.1)
            return real_open()

        monkeypatch.setattr(database, "_open_connection", slow_open)

        results = []
        threads = [threading.Thread(target=lambda: results.append(database.get_connection())) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(results) == 5
        assert all(c is results[0] for c in results)

    def test_wait_times_out(self, db_path):
        db = Database(db_path, open_wait_timeout=0.05, poll_interval=0.01)
        db.state = ConnectionState.OPENING
        with pytest.raises(DatabaseOpenError):
            db.get_connection()


class TestCorruptionRecovery:
    def test_garbage_file_is_recreated(self, db_path):
        db_path.write_bytes(b"this is definitely not an sqlite file " * 200)
        db = Database(db_path)
        try:
            db.get_connection()
            assert "products" in _table_names(db)
            assert db.initialize() is True
            assert db.fetchone("SELECT COUNT(*) AS c FROM permissions;")["c"] == 24
        finally:
            db.reset()

    def test_second_failure_propagates(self, database, monkeypatch):
        calls = []

        def always_corrupt():
            calls.append(1)
            raise sqlite3.DatabaseError("file is not a database")

        monkeypatch.setattr(database, "_open_connection", always_corrupt)
        with pytest.raises(sqlite3.DatabaseError):
            database.get_connection()
        assert len(calls) == 2
        assert database.state is ConnectionState.CLOSED

    def test_other_errors_propagate_without_recreate(self, tmp_path):
        folder = tmp_path / "is_a_directory"
        folder.mkdir()
        db = Database(folder)
        with pytest.raises(sqlite3.OperationalError):
            db.get_connection()
        assert folder.is_dir()
        assert db.state is ConnectionState.CLOSED

    @pytest.mark.parametrize("exc, expected", [
        (sqlite3.DatabaseError("file is not a database"), True),
        (sqlite3.DatabaseError("database disk image is malformed"), True),
        (sqlite3.OperationalError("database is locked"), False),
        (ValueError("malformed"), False),
    ])
    def test_is_corruption_error(self, exc, expected):
        assert is_corruption_error(exc) is expected


class TestStatements:
    def test_integrity_error_is_translated(self, database):
        database.initialize()
        with pytest.raises(ConstraintViolationError):
            database.execute("INSERT INTO permissions(name) VALUES('COBRAR');")

    def test_transaction_rolls_back_on_error(self, database):
        database.initialize()
        with pytest.raises(RuntimeError):
            with database.transaction() as conn:
                conn.execute("INSERT INTO products(name, price, cost) VALUES('Tea', 10, 2);")
                raise RuntimeError("boom")
        assert database.fetchall("SELECT * FROM products;") == []


class TestMigrations:
    def test_old_file_gains_new_columns(self, db_path):
        conn = sqlite3.connect(str(db_path))
        conn.executescript(
            """
            CREATE TABLE sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sale_date TEXT NOT NULL,
                sale_time TEXT NOT NULL,
                total_amount REAL NOT NULL,
                payment_received REAL NOT NULL,
                change_given REAL NOT NULL
            );
            CREATE TABLE costing_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                costing_id INTEGER NOT NULL,
                item_name TEXT NOT NULL,
                unit_price REAL NOT NULL,
                quantity_used REAL NOT NULL
            );
            INSERT INTO sales(sale_date, sale_time, total_amount, payment_received, change_given)
            VALUES('2023-12-31', '23:59:00', 10, 10, 0);
            """
        )
        conn.commit()
        conn.close()

        db = Database(db_path)
        try:
            db.initialize()
            assert {"business_name", "user_id"} <= db._table_columns("sales")
            assert "unit_of_measure" in db._table_columns("costing_items")
            assert db.user_version() == SCHEMA_VERSION
            assert db.fetchone("SELECT total_amount FROM sales;")["total_amount"] == 10
        finally:
            db.reset()
