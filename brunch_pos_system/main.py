from __future__ import annotations

import argparse
import getpass
import logging
import sys

from brunch_pos.config import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_ADMIN_PASSWORD,
    KEYRING_SERVICE,
    LOG_FORMAT,
    LOG_LEVEL,
)
from brunch_pos.db.backend import select_backend
from brunch_pos.db.seed_menu import seed_demo_data
from brunch_pos.services.auth_service import AuthService
from brunch_pos.services.data_service import DataService
from brunch_pos.services.session_store import SessionStore
from brunch_pos.utils import hash_password
from brunch_pos.validators import validate_password


def cmd_init(data: DataService, args) -> int:
    data.initialize()
    if args.demo:
        owner = next((u.id for u in data.get_all_users() if u.is_admin), None)
        if seed_demo_data(data.backend, user_id=owner):
            print("[OK] Demo menu and sales loaded")
        else:
            print("[--] Store already has products or sales; demo data skipped")
    data.ensure_inventory_tables()
    print(f"[OK] {APP_NAME} storage ready ({data.backend.name})")
    return 0


def cmd_users(data: DataService, args) -> int:
    users = data.get_all_users()
    if not users:
        print("No users.")
        return 0
    for u in users:
        perms = data.get_user_permissions(u.id)
        role = "admin" if u.is_admin else f"{len(perms)} permissions"
        print(f"{u.id:>4}  {u.username:<20} {role}")
    return 0


def cmd_reset_admin_password(data: DataService, args) -> int:
    password = args.password or DEFAULT_ADMIN_PASSWORD
    ok, reason = validate_password(password)
    if not ok:
        print(f"[ERROR] {reason}")
        return 2
    changed = data.reset_admin_password(hash_password(password))
    if changed == 0:
        print("[ERROR] No administrator found")
        return 1
    print(f"[OK] Password reset for {changed} administrator(s)")
    return 0


def cmd_check_login(data: DataService, args) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    # Separate keyring entry so a check never replaces the terminal's remembered login.
    auth = AuthService(data, SessionStore(f"{KEYRING_SERVICE}-check"))
    if not auth.login(args.username, password):
        print(f"[FAIL] {auth.get_last_error()}")
        return 1
    user = auth.get_current_user()
    print(f"[OK] '{user.username}' authenticated (admin={user.is_admin})")
    print("     permissions: " + (", ".join(sorted(auth.session.permissions)) or "-"))
    auth.logout()
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="brunch-pos",
        description=f"{APP_NAME} v{APP_VERSION} maintenance tools.",
    )
    ap.add_argument("--backend", choices=["auto", "sqlite", "kv"], default=None,
                    help="Storage backend (default: BRUNCH_POS_BACKEND or auto)")
    ap.add_argument("--log-level", default=LOG_LEVEL,
                    help=f"Logging level (default: {LOG_LEVEL})")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Create tables, permissions and the default admin")
    p.add_argument("--demo", action="store_true", help="Also load the example menu and sales")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("users", help="List users and their permission count")
    p.set_defaults(func=cmd_users)

    p = sub.add_parser("reset-admin-password", help="Overwrite every administrator's password")
    p.add_argument("--password", default=None,
                   help="New password (default: the factory admin password)")
    p.set_defaults(func=cmd_reset_admin_password)

    p = sub.add_parser("check-login", help="Try a username/password against the store")
    p.add_argument("username")
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.set_defaults(func=cmd_check_login)

    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    data = DataService(select_backend(args.backend))
    try:
        return args.func(data, args)
    finally:
        data.reset()


if __name__ == "__main__":
    sys.exit(main())
