# Brunch & Bites POS Test Suite - Shared Fixtures
#
# This module provides:
# - Throwaway storage per test (SQLite file or JSON key/value file)
# - A `data` fixture parametrized over both backends
# - An in-memory keyring so session tests never touch the real secret store

from pathlib import Path
from typing import Optional

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from brunch_pos.db.dao import SqliteBackend
from brunch_pos.db.database import Database
from brunch_pos.db.kv_backend import KeyValueBackend
from brunch_pos.db.kv_store import JsonFileStorage, KeyValueTableStore
from brunch_pos.services.data_service import DataService


# =============================================================================
# KEYRING
# =============================================================================

class MemoryKeyring(KeyringBackend):
    """Keyring backend that lives in a dict."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.entries: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self.entries.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.entries[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.entries:
            raise PasswordDeleteError(f"{service}/{username} not found")
        del self.entries[(service, username)]


@pytest.fixture(autouse=True)
def memory_keyring():
    previous = keyring.get_keyring()
    kr = MemoryKeyring()
    keyring.set_keyring(kr)
    yield kr
    keyring.set_keyring(previous)


# =============================================================================
# STORAGE
# =============================================================================

@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "pos_system.db"


@pytest.fixture
def database(db_path: Path):
    db = Database(db_path, open_wait_timeout=2.0, poll_interval=0.01)
    yield db
    db.reset()


@pytest.fixture
def kv_path(tmp_path: Path) -> Path:
    return tmp_path / "pos_storage.json"


@pytest.fixture
def kv_store(kv_path: Path) -> KeyValueTableStore:
    return KeyValueTableStore(JsonFileStorage(kv_path))


@pytest.fixture
def sqlite_data(database: Database) -> DataService:
    data = DataService(SqliteBackend(database))
    data.initialize()
    return data


@pytest.fixture
def kv_data(kv_store: KeyValueTableStore) -> DataService:
    data = DataService(KeyValueBackend(kv_store, seed_demo=False))
    data.initialize()
    return data


@pytest.fixture(params=["sqlite", "kv"])
def data(request) -> DataService:
    """Initialized DataService, once per backend."""
    return request.getfixturevalue(f"{request.param}_data")


@pytest.fixture
def admin(data: DataService):
    return data.get_user_by_username("admin")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "smoke: Quick smoke tests for critical paths")
