from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from brunch_pos.constants import (
    ERROR_INVALID_CREDENTIALS,
    ERROR_USERNAME_TAKEN,
    ROUTE_PERMISSIONS,
)
from brunch_pos.errors import PermissionDeniedError, UsernameTakenError
from brunch_pos.models.user import User
from brunch_pos.services.data_service import DataService
from brunch_pos.services.session_store import SessionStore
from brunch_pos.utils import hash_password, same_hash, verify_password
from brunch_pos.validators import validate_password, validate_username

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Anonymous when user is None, otherwise authenticated with a permission set."""

    user: Optional[User] = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin)

    def has_permission(self, name: str) -> bool:
        # Admin is an absolute override, not an extra grant.
        if self.user is None:
            return False
        return self.user.is_admin or name in self.permissions


class AuthService:
    """
    Session state for one terminal.

    Lifecycle: resume_session() at startup (silent re-login from the secret
    store), then login()/logout(). Screens receive this object and gate
    themselves with check_permission / can_access.
    """

    def __init__(self, data: DataService, session_store: Optional[SessionStore] = None):
        self.data = data
        self.session_store = session_store or SessionStore()
        self.session = Session()
        self._last_error: str = ""

    def get_last_error(self) -> str:
        return self._last_error

    def get_current_user(self) -> Optional[User]:
        return self.session.user

    # ---- login / logout ----
    def _start_session(self, user: User) -> None:
        perms = self.data.get_user_permissions(user.id)
        self.session = Session(user, frozenset(perms))

    def login(self, username: str, password: str) -> bool:
        """
        True and an authenticated session on success.
        Any failure (unknown user, wrong password, storage trouble) is the
        same False + ERROR_INVALID_CREDENTIALS.
        """
        self._last_error = ""
        try:
            user = self.data.get_user_by_username((username or "").strip())
        except Exception as exc:
            logger.warning("Login lookup failed: %s", exc)
            user = None

        if user is None or not verify_password(password or "", user.password_hash):
            self._last_error = ERROR_INVALID_CREDENTIALS
            return False

        self._start_session(user)
        self.session_store.save(user.username, user.password_hash)
        logger.info("User '%s' logged in", user.username)
        return True

    def logout(self) -> None:
        if self.session.user is not None:
            logger.info("User '%s' logged out", self.session.user.username)
        self.session = Session()
        self._last_error = ""
        self.session_store.clear()

    def resume_session(self) -> bool:
        """
        Re-authenticate from the stored credentials.
        Fails closed: any mismatch clears the store and leaves the session anonymous.
        """
        stored = self.session_store.load()
        if stored is None:
            return False
        username, stored_hash = stored
        try:
            user = self.data.get_user_by_username(username)
        except Exception as exc:
            logger.warning("Session resume lookup failed: %s", exc)
            user = None

        if user is None or not same_hash(stored_hash, user.password_hash):
            logger.info("Stored session for '%s' is no longer valid", username)
            self.session_store.clear()
            self.session = Session()
            return False

        self._start_session(user)
        return True

    # ---- permissions ----
    def check_permission(self, name: str) -> bool:
        return self.session.has_permission(name)

    def require_permission(self, name: str) -> None:
        if not self.check_permission(name):
            raise PermissionDeniedError(name)

    def can_access(self, route: str) -> bool:
        """Route gate. Unknown routes need a login; public ones need nothing."""
        if route in ROUTE_PERMISSIONS and ROUTE_PERMISSIONS[route] is None:
            return True
        if not self.session.is_authenticated:
            return False
        required = ROUTE_PERMISSIONS.get(route)
        return required is None or self.check_permission(required)

    def refresh_permissions(self) -> None:
        if self.session.user is not None:
            self._start_session(self.session.user)

    # ---- user management ----
    def register_user(self, username: str, password: str, is_admin: bool = False) -> tuple[bool, str, int]:
        username = (username or "").strip()
        ok, reason = validate_username(username)
        if not ok:
            return False, reason, 0
        ok, reason = validate_password(password)
        if not ok:
            return False, reason, 0
        try:
            uid = self.data.add_user(username, hash_password(password), is_admin)
        except UsernameTakenError:
            return False, ERROR_USERNAME_TAKEN, 0
        return True, f"User '{username}' created successfully", uid

    def change_password(self, user_id: int, new_password: str) -> tuple[bool, str]:
        ok, reason = validate_password(new_password)
        if not ok:
            return False, reason
        if self.data.update_user_password(user_id, hash_password(new_password)) == 0:
            return False, "User not found."
        if self.session.user is not None and self.session.user.id == int(user_id):
            user = self.data.get_user_by_id(user_id)
            if user is not None:
                self.session = Session(user, self.session.permissions)
                self.session_store.save(user.username, user.password_hash)
        return True, "Password changed successfully."

    def set_user_permissions(self, user_id: int, names: Iterable[str]) -> tuple[int, int]:
        """Make the user's grants exactly `names`. Returns (granted, revoked)."""
        wanted = set(names)
        current = set(self.data.get_user_permissions(user_id))
        granted = revoked = 0
        for p in self.data.get_all_permissions():
            if p.name in wanted and p.name not in current:
                granted += self.data.assign_permission_to_user(user_id, p.id)
            elif p.name in current and p.name not in wanted:
                revoked += self.data.revoke_permission_from_user(user_id, p.id)
        if self.session.user is not None and self.session.user.id == int(user_id):
            self.refresh_permissions()
        return granted, revoked
