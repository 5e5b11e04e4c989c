# Auth & permission layer plus keyring session persistence.

import pytest

from brunch_pos.config import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME, KEYRING_SERVICE
from brunch_pos.constants import (
    ALL_PERMISSION_NAMES,
    ERROR_INVALID_CREDENTIALS,
    ERROR_USERNAME_TAKEN,
    P_CHARGE,
    P_GRANT,
    P_VIEW_REPORTS,
)
from brunch_pos.errors import PermissionDeniedError
from brunch_pos.services.auth_service import AuthService, Session
from brunch_pos.services.session_store import SessionStore
from brunch_pos.validators import validate_password, validate_username


@pytest.fixture
def auth(data) -> AuthService:
    return AuthService(data, SessionStore())


@pytest.fixture
def cashier(auth):
    ok, _msg, uid = auth.register_user("cajero1", "Cajero123")
    assert ok
    auth.set_user_permissions(uid, [P_CHARGE])
    return uid


class TestValidators:
    @pytest.mark.parametrize("username, ok", [
        ("ab", False),
        ("1abc", False),
        ("abc_1", True),
        ("a" * 20, True),
        ("a" * 21, False),
        ("ana maria", False),
        ("abc\n", False),
        ("", False),
    ])
    def test_username_policy(self, username, ok):
        assert validate_username(username)[0] is ok

    @pytest.mark.parametrize("password, ok", [
        ("Short1", False),
        ("alllowercase1", False),
        ("ALLUPPERCASE1", False),
        ("NoDigitsHere", False),
        ("GoodPass1", True),
    ])
    def test_password_policy(self, password, ok):
        valid, reason = validate_password(password)
        assert valid is ok
        assert (reason == "") is ok


class TestLogin:
    @pytest.mark.smoke
    def test_default_admin_can_log_in(self, auth):
        assert auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD) is True
        assert auth.session.is_authenticated
        assert auth.get_current_user().is_admin

    def test_failures_are_indistinguishable(self, auth):
        assert auth.login("nobody", "Whatever1") is False
        unknown_user = auth.get_last_error()
        assert auth.login(DEFAULT_ADMIN_USERNAME, "WrongPass1") is False
        wrong_password = auth.get_last_error()
        assert unknown_user == wrong_password == ERROR_INVALID_CREDENTIALS
        assert not auth.session.is_authenticated

    def test_storage_error_is_a_failed_login(self, auth, monkeypatch):
        def boom(username):
            raise RuntimeError("store offline")

        monkeypatch.setattr(auth.data, "get_user_by_username", boom)
        assert auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD) is False
        assert auth.get_last_error() == ERROR_INVALID_CREDENTIALS

    def test_granted_and_missing_permissions(self, auth, cashier):
        assert auth.login("cajero1", "Cajero123")
        assert auth.check_permission(P_CHARGE) is True
        assert auth.check_permission(P_VIEW_REPORTS) is False
        with pytest.raises(PermissionDeniedError) as exc_info:
            auth.require_permission(P_VIEW_REPORTS)
        assert exc_info.value.permission == P_VIEW_REPORTS

    def test_logout(self, auth, memory_keyring):
        auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD)
        assert memory_keyring.entries
        auth.logout()
        assert not auth.session.is_authenticated
        assert auth.check_permission(P_CHARGE) is False
        assert memory_keyring.entries == {}


class TestAdminOverride:
    @pytest.mark.parametrize("perm", ALL_PERMISSION_NAMES + ["ANYTHING_ELSE"])
    def test_admin_without_grants_passes_every_check(self, data, perm):
        uid = data.add_user("jefe", "h", is_admin=True)
        session = Session(data.get_user_by_id(uid), frozenset())
        assert session.has_permission(perm)

    def test_anonymous_has_nothing(self):
        assert Session().has_permission(P_CHARGE) is False


class TestRoutes:
    def test_public_route(self, auth):
        assert auth.can_access("login")

    def test_routes_follow_permissions(self, auth, cashier):
        assert not auth.can_access("caja")
        auth.login("cajero1", "Cajero123")
        assert auth.can_access("caja")
        assert not auth.can_access("reportes")
        assert not auth.can_access("permisos")


class TestUserManagement:
    def test_register_validates(self, auth):
        ok, msg, uid = auth.register_user("1bad", "GoodPass1")
        assert (ok, uid) == (False, 0)
        ok, msg, uid = auth.register_user("good_name", "weak")
        assert (ok, uid) == (False, 0)

    def test_register_duplicate(self, auth):
        assert auth.register_user("cajero1", "Cajero123")[0]
        ok, msg, _ = auth.register_user("cajero1", "Cajero123")
        assert not ok
        assert msg == ERROR_USERNAME_TAKEN

    def test_set_user_permissions_matches_target(self, auth, data, cashier):
        granted, revoked = auth.set_user_permissions(cashier, [P_VIEW_REPORTS, P_GRANT])
        assert (granted, revoked) == (2, 1)
        assert sorted(data.get_user_permissions(cashier)) == sorted([P_VIEW_REPORTS, P_GRANT])

    def test_change_password(self, auth, cashier):
        ok, _ = auth.change_password(cashier, "Nuevo1234")
        assert ok
        assert not auth.login("cajero1", "Cajero123")
        assert auth.login("cajero1", "Nuevo1234")
        assert auth.change_password(cashier, "weak")[0] is False
        assert auth.change_password(9999, "Valid1234") == (False, "User not found.")


class TestSessionResume:
    def test_resume_after_restart(self, data, auth):
        assert auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD)
        fresh = AuthService(data, SessionStore())
        assert fresh.resume_session() is True
        assert fresh.get_current_user().username == DEFAULT_ADMIN_USERNAME
        assert fresh.check_permission(P_CHARGE)

    def test_resume_fails_closed_after_password_reset(self, data, auth, memory_keyring):
        assert auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD)
        data.reset_admin_password("someone-else-reset-it")

        fresh = AuthService(data, SessionStore())
        assert fresh.resume_session() is False
        assert not fresh.session.is_authenticated
        assert (KEYRING_SERVICE, "username") not in memory_keyring.entries

    def test_nothing_stored(self, data):
        assert AuthService(data, SessionStore()).resume_session() is False

    def test_plaintext_is_never_stored(self, auth, memory_keyring):
        auth.login(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD)
        assert DEFAULT_ADMIN_PASSWORD not in memory_keyring.entries.values()
