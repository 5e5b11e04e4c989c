from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from brunch_pos.config import STORAGE_PREFIX
from brunch_pos.db.schema import COMPOSITE_KEY_TABLES, FOREIGN_KEYS, UNIQUE_KEYS
from brunch_pos.errors import ConstraintViolationError, StorageError

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Predicate = Callable[[Row], bool]


class JsonFileStorage:
    """
    String key -> string value store persisted as one JSON document.

    Same surface as browser local storage (get_item / set_item / remove_item).
    Every set writes the whole file through a temp file and os.replace.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Optional[dict[str, str]] = None
        self._lock = threading.RLock()

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Cannot read key/value store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Key/value store {self.path} does not hold an object")
        self._data = {str(k): str(v) for k, v in data.items()}
        return self._data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data or {}, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise StorageError(f"Cannot write key/value store {self.path}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._load()[key] = value
            self._flush_or_forget()

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._flush_or_forget()

    def _flush_or_forget(self) -> None:
        # The cache must never hold a write the file did not get.
        try:
            self._flush()
        except StorageError:
            self._data = None
            raise

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load().keys())

    def invalidate(self) -> None:
        """Forget the cached document; the next read goes back to disk."""
        with self._lock:
            self._data = None


def _match(**equals: Any) -> Predicate:
    return lambda row: all(row.get(k) == v for k, v in equals.items())


class KeyValueTableStore:
    """
    Tables emulated on top of a key/value storage.

    Each table is a JSON list under STORAGE_PREFIX + table, and its id counter
    a decimal string under STORAGE_PREFIX + table + "_counter". Counters only
    ever go up, so a deleted id is never handed out again.
    Unique keys and foreign keys from brunch_pos.db.schema are enforced here.
    """

    def __init__(self, storage: JsonFileStorage, prefix: str = STORAGE_PREFIX):
        self.storage = storage
        self.prefix = prefix
        self._lock = threading.RLock()

    @property
    def lock(self):
        """Held by every mutation; callers take it to group several writes."""
        return self._lock

    # ---- keys ----
    def table_key(self, table: str) -> str:
        return f"{self.prefix}{table}"

    def counter_key(self, table: str) -> str:
        return f"{self.prefix}{table}_counter"

    # ---- raw table access ----
    def ensure_table(self, table: str) -> None:
        with self._lock:
            if self.storage.get_item(self.table_key(table)) is None:
                self.storage.set_item(self.table_key(table), "[]")
            if table not in COMPOSITE_KEY_TABLES and self.storage.get_item(self.counter_key(table)) is None:
                self.storage.set_item(self.counter_key(table), "0")

    def list_table(self, table: str) -> list[Row]:
        """Fresh copy of every row; callers may mutate it freely."""
        raw = self.storage.get_item(self.table_key(table))
        if raw is None:
            return []
        try:
            rows = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Table {table} is not valid JSON: {exc}") from exc
        if not isinstance(rows, list):
            raise StorageError(f"Table {table} is not a list")
        return rows

    def _write_table(self, table: str, rows: list[Row]) -> None:
        self.storage.set_item(self.table_key(table), json.dumps(rows, ensure_ascii=False))

    def _next_id(self, table: str) -> int:
        raw = self.storage.get_item(self.counter_key(table))
        current = int(raw) if raw else 0
        # Never behind the highest id already stored (tables written without a counter).
        existing = [int(r["id"]) for r in self.list_table(table) if r.get("id") is not None]
        next_id = max([current] + existing) + 1
        self.storage.set_item(self.counter_key(table), str(next_id))
        return next_id

    # ---- constraints ----
    def _check_unique(self, table: str, row: Row, others: Iterable[Row]) -> None:
        others = list(others)
        for cols in UNIQUE_KEYS.get(table, []):
            values = tuple(row.get(c) for c in cols)
            if any(v is None for v in values):
                continue
            for other in others:
                if tuple(other.get(c) for c in cols) == values:
                    raise ConstraintViolationError(
                        f"UNIQUE constraint failed: {', '.join(f'{table}.{c}' for c in cols)}"
                    )

    def _check_parents(self, table: str, row: Row) -> None:
        for child, col, parent, _action in FOREIGN_KEYS:
            if child != table or row.get(col) is None:
                continue
            if not self.find(parent, _match(id=row[col])):
                raise ConstraintViolationError(
                    f"FOREIGN KEY constraint failed: {table}.{col} -> {parent}({row[col]})"
                )

    # ---- queries ----
    def find(self, table: str, predicate: Optional[Predicate] = None, **equals: Any) -> list[Row]:
        rows = self.list_table(table)
        if equals:
            rows = [r for r in rows if _match(**equals)(r)]
        if predicate is not None:
            rows = [r for r in rows if predicate(r)]
        return rows

    def find_one(self, table: str, predicate: Optional[Predicate] = None, **equals: Any) -> Optional[Row]:
        rows = self.find(table, predicate, **equals)
        return rows[0] if rows else None

    # ---- mutations ----
    def insert_into(self, table: str, row: Row) -> int:
        """Append a row. Returns the allocated id (0 for composite-key tables)."""
        with self._lock:
            rows = self.list_table(table)
            new_row = {k: v for k, v in row.items() if k != "id"}
            self._check_unique(table, new_row, rows)
            self._check_parents(table, new_row)

            if table in COMPOSITE_KEY_TABLES:
                rows.append(new_row)
                self._write_table(table, rows)
                return 0

            new_id = self._next_id(table)
            rows.append({"id": new_id, **new_row})
            self._write_table(table, rows)
            return new_id

    def update_where(self, table: str, predicate: Predicate, changes: Row) -> int:
        with self._lock:
            rows = self.list_table(table)
            count = 0
            for i, r in enumerate(rows):
                if not predicate(r):
                    continue
                updated = {**r, **changes}
                self._check_unique(table, updated, rows[:i] + rows[i + 1:])
                self._check_parents(table, updated)
                rows[i] = updated
                count += 1
            if count:
                self._write_table(table, rows)
            return count

    def delete_where(self, table: str, predicate: Predicate) -> int:
        """
        Delete matching rows. Children declared CASCADE go with them;
        a RESTRICT child still pointing at a row blocks the whole delete.
        """
        with self._lock:
            rows = self.list_table(table)
            doomed = [r for r in rows if predicate(r)]
            if not doomed:
                return 0

            ids = {r.get("id") for r in doomed if r.get("id") is not None}
            if ids:
                for child, col, parent, action in FOREIGN_KEYS:
                    if parent == table and action == "RESTRICT" and self.find(child, lambda r: r.get(col) in ids):
                        raise ConstraintViolationError(
                            f"FOREIGN KEY constraint failed: {child}.{col} still references {table}"
                        )
                for child, col, parent, action in FOREIGN_KEYS:
                    if parent == table and action == "CASCADE":
                        self.delete_where(child, lambda r, col=col: r.get(col) in ids)

            kept = [r for r in rows if not predicate(r)]
            self._write_table(table, kept)
            return len(doomed)

    def clear(self) -> int:
        """Remove every key this store owns. Returns the number removed."""
        with self._lock:
            owned = [k for k in self.storage.keys() if k.startswith(self.prefix)]
            for key in owned:
                self.storage.remove_item(key)
            logger.info("Cleared %d key/value entries", len(owned))
            return len(owned)
