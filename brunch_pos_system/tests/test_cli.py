# Maintenance CLI (main.py) against throwaway storage.

import pytest

import main
from brunch_pos.db import backend as backend_module
from brunch_pos.db.dao import SqliteBackend
from brunch_pos.db.database import Database
from brunch_pos.db.kv_backend import KeyValueBackend
from brunch_pos.db.kv_store import JsonFileStorage, KeyValueTableStore


@pytest.fixture(params=["sqlite", "kv"])
def cli_backend(request, tmp_path, monkeypatch):
    """Point main.select_backend at files under tmp_path; the same files every call."""
    def fake_select(kind=None):
        if request.param == "sqlite":
            return SqliteBackend(Database(tmp_path / "cli.db"))
        return KeyValueBackend(KeyValueTableStore(JsonFileStorage(tmp_path / "cli.json")))

    monkeypatch.setattr(main, "select_backend", fake_select)
    return request.param


class TestCli:
    def test_init_with_demo(self, cli_backend, capsys):
        assert main.main(["init", "--demo"]) == 0
        out = capsys.readouterr().out
        assert "Demo menu and sales loaded" in out
        assert main.main(["users"]) == 0
        assert "admin" in capsys.readouterr().out

    def test_check_login(self, cli_backend, capsys):
        main.main(["init"])
        assert main.main(["check-login", "admin", "--password", "Admin123"]) == 0
        assert main.main(["check-login", "admin", "--password", "nope"]) == 1
        assert "Invalid username or password" in capsys.readouterr().out

    def test_reset_admin_password(self, cli_backend):
        main.main(["init"])
        assert main.main(["reset-admin-password", "--password", "weak"]) == 2
        assert main.main(["reset-admin-password", "--password", "Cambio123"]) == 0
        assert main.main(["check-login", "admin", "--password", "Cambio123"]) == 0


def test_select_backend_rejects_unknown_kind():
    with pytest.raises(ValueError):
        backend_module.select_backend("mongo")


def test_select_backend_explicit_kv(tmp_path):
    b = backend_module.select_backend("kv", kv_path=tmp_path / "s.json", seed_demo=False)
    assert isinstance(b, KeyValueBackend)


def test_incomplete_backend_cannot_be_built():
    class OnlyOpens(backend_module.StorageBackend):
        def open(self):
            return None

    with pytest.raises(TypeError):
        OnlyOpens()


def test_both_backends_are_complete(tmp_path):
    assert SqliteBackend(Database(tmp_path / "pos.db")).name == "sqlite"
    assert KeyValueBackend(KeyValueTableStore(JsonFileStorage(tmp_path / "s.json"))).name == "kv"
