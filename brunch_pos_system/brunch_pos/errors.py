from __future__ import annotations


class PosError(Exception):
    """Base class for errors raised by the POS data core."""


class StorageError(PosError):
    """The key/value substrate could not be read or written."""


class DatabaseOpenError(PosError):
    """The native database could not be opened (or the wait for it timed out)."""


class ConstraintViolationError(PosError):
    """A unique or foreign-key rule rejected a write."""


class UsernameTakenError(ConstraintViolationError):
    def __init__(self, username: str):
        super().__init__(f"Username '{username}' is already in use")
        self.username = username


class InvalidSaleError(PosError):
    """A sale or costing failed validation before anything was written."""


class PermissionDeniedError(PosError):
    def __init__(self, permission: str):
        super().__init__(f"Missing permission: {permission}")
        self.permission = permission
