from __future__ import annotations

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from brunch_pos.config import KEYRING_SERVICE

logger = logging.getLogger(__name__)

_USERNAME_KEY = "username"
_HASH_KEY = "password_hash"


class SessionStore:
    """
    Last successful login, kept in the OS secret store.

    Only the username and the password hash are stored, never the plaintext.
    Keyring trouble is logged and otherwise ignored: a missing secret store
    just means no silent resume.
    """

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def save(self, username: str, password_hash: str) -> bool:
        try:
            keyring.set_password(self.service, _USERNAME_KEY, username)
            keyring.set_password(self.service, _HASH_KEY, password_hash)
            return True
        except KeyringError as exc:
            logger.warning("Could not persist session for '%s': %s", username, exc)
            return False

    def load(self) -> Optional[tuple[str, str]]:
        try:
            username = keyring.get_password(self.service, _USERNAME_KEY)
            password_hash = keyring.get_password(self.service, _HASH_KEY)
        except KeyringError as exc:
            logger.warning("Could not read persisted session: %s", exc)
            return None
        if not username or not password_hash:
            return None
        return username, password_hash

    def clear(self) -> None:
        for key in (_USERNAME_KEY, _HASH_KEY):
            try:
                keyring.delete_password(self.service, key)
            except PasswordDeleteError:
                pass  # nothing stored
            except KeyringError as exc:
                logger.warning("Could not clear persisted session key %s: %s", key, exc)
