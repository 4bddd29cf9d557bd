"""Operator commands: bootstrap the first admin, inspect and repair accounts.

    cms-admin init-admin --username root --email root@example.com
    cms-admin list-admins
    cms-admin set-password --username root
    cms-admin purge-tokens
"""
import argparse
import asyncio
import getpass
import sys

from app.core.exceptions import AppException
from app.core.logging import setup_logging
from app.core.security import is_bcrypt_hash
from app.services.auth import AuthService
from app.services.email import mailer
from app.stores.factory import close_store, get_store


def _ask(value: str | None, prompt: str, secret: bool = False) -> str:
    if value is not None:
        return value
    return getpass.getpass(prompt) if secret else input(prompt)


async def _service() -> AuthService:
    return AuthService(await get_store(), mailer)


async def init_admin(args) -> int:
    auth = await _service()
    username = _ask(args.username, "Username: ").strip()
    email = _ask(args.email, "Email (optional, used for password resets): ").strip() or None
    password = _ask(args.password, "Password: ", secret=True)

    admin = await auth.bootstrap_admin(username, email, password)
    print(f"Admin created: {admin.username} (id {admin.id})")
    if admin.is_super_admin:
        print("This account is a SUPER ADMINISTRATOR and can manage other accounts.")
    return 0


async def list_admins(args) -> int:
    auth = await _service()
    admins = await auth.store.admins.list_all()
    if not admins:
        print("No admins found")
        return 1
    for admin in admins:
        hash_state = "ok" if is_bcrypt_hash(admin.password_hash) else "NOT A BCRYPT HASH"
        print(f"{admin.id}\t{admin.username!r}\temail={admin.email or '-'}\tsuper={admin.is_super_admin}\thash={hash_state}")
    return 0


async def set_password(args) -> int:
    auth = await _service()
    password = _ask(args.password, "New password: ", secret=True)
    admin = await auth.set_password(args.username, password)
    print(f"Password updated for {admin.username}")
    return 0


async def purge_tokens(args) -> int:
    auth = await _service()
    removed = await auth.purge_expired_tokens()
    print(f"Removed {removed} expired reset tokens")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cms-admin", description="Admin account maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-admin", help="create an admin (the first one becomes super admin)")
    p.add_argument("--username")
    p.add_argument("--email")
    p.add_argument("--password")
    p.set_defaults(handler=init_admin)

    p = sub.add_parser("list-admins", help="list admins and check their password hashes")
    p.set_defaults(handler=list_admins)

    p = sub.add_parser("set-password", help="replace an admin's password")
    p.add_argument("--username", required=True)
    p.add_argument("--password")
    p.set_defaults(handler=set_password)

    p = sub.add_parser("purge-tokens", help="delete expired password reset tokens")
    p.set_defaults(handler=purge_tokens)
    return parser


async def _run(args) -> int:
    try:
        return await args.handler(args)
    except AppException as exc:
        print(f"Error: {exc.user_message}", file=sys.stderr)
        return 1
    finally:
        await close_store()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
