from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from rentdesk.client.api import ApiError, DashboardClient, Session
from rentdesk.client.cache import CacheStore
from rentdesk.client.reconciler import MutationResult, Reconciler


DEFAULT_BASE_URL = os.getenv("RENTDESK_BASE_URL", "http://localhost:8000")
DEFAULT_HOME = Path(os.getenv("RENTDESK_HOME", Path.home() / ".rentdesk"))

FIELD_ARGS = (
    ("name", "name"),
    ("price", "price"),
    ("rooms", "rooms"),
    ("location", "location"),
    ("city", "city"),
    ("utilities", "utilities"),
    ("parking", "parking"),
    ("pet_policy", "petPolicy"),
    ("available", "available"),
    ("note", "note"),
)


def _session_path(home: Path) -> Path:
    return home / "session.json"


def _load_session(home: Path) -> Session | None:
    try:
        data = json.loads(_session_path(home).read_text(encoding="utf-8"))
        return Session(**data)
    except (OSError, ValueError, TypeError):
        return None


def _save_session(home: Path, session: Session) -> None:
    home.mkdir(parents=True, exist_ok=True)
    _session_path(home).write_text(json.dumps(session.__dict__), encoding="utf-8")


def _fields_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {wire: getattr(args, attr) or "" for attr, wire in FIELD_ARGS}


def _print_listings(listings: list[dict[str, Any]]) -> None:
    if not listings:
        print("No apartments found. Add your first apartment to get started.")
        return
    for item in listings:
        print(f"{item.get('id')}  [{item.get('status', 'Available')}]  {item.get('name') or 'Unnamed Apartment'}")
        print(f"    {item.get('price')} | {item.get('rooms')} | {item.get('location')}, {item.get('city')}")


def _report(result: MutationResult, success: str) -> int:
    if result.ok:
        print(success)
        return 0
    print(f"Failed: {result.error}", file=sys.stderr)
    return 1


async def _run(args: argparse.Namespace) -> int:
    home = Path(args.home)
    async with DashboardClient(base_url=args.base_url, session=_load_session(home)) as client:
        if args.command == "login":
            try:
                session = await client.login(args.username, args.password)
            except ApiError as e:
                print(f"Login failed: {e.message}", file=sys.stderr)
                return 1
            _save_session(home, session)
            print(f"Signed in as: {session.user_name}")
            return 0

        if client.session is None:
            print("Not signed in. Run the login command first.", file=sys.stderr)
            return 2

        reconciler = Reconciler(client, CacheStore(home / "cache.json"))
        reconciler.load()

        if args.command == "list":
            if not await reconciler.refresh():
                print(f"Error loading apartments: {reconciler.last_refresh_error} (showing cached list)", file=sys.stderr)
            _print_listings(reconciler.listings)
            return 0
        try:
            if args.command == "add":
                return _report(await reconciler.create(_fields_from_args(args)), "Apartment created successfully!")
            if args.command == "edit":
                return _report(await reconciler.update(args.id, _fields_from_args(args)), "Apartment updated.")
            if args.command == "status":
                return _report(await reconciler.set_status(args.id, args.status), f"Status set to {args.status}.")
            if args.command == "delete":
                return _report(await reconciler.delete(args.id), "Apartment deleted.")
        except ValueError as e:
            # e.g. a tmp_ id left in the cache by an interrupted session
            print(f"Failed: {e}", file=sys.stderr)
            return 1

    return 2


def _add_field_args(p: argparse.ArgumentParser, *, required: bool) -> None:
    for attr, wire in FIELD_ARGS:
        flag = "--" + attr.replace("_", "-")
        p.add_argument(flag, dest=attr, required=required and attr != "note", help=wire)


def main() -> int:
    p = argparse.ArgumentParser(description="Manage apartment listings from the terminal.")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL)
    p.add_argument("--home", default=str(DEFAULT_HOME), help="where the session and listing cache are kept")
    sub = p.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login")
    login.add_argument("--username", required=True)
    login.add_argument("--password", required=True)

    sub.add_parser("list")

    add = sub.add_parser("add")
    _add_field_args(add, required=True)

    edit = sub.add_parser("edit")
    edit.add_argument("id")
    _add_field_args(edit, required=True)

    status = sub.add_parser("status")
    status.add_argument("id")
    status.add_argument("status", choices=["Available", "Rented"])

    delete = sub.add_parser("delete")
    delete.add_argument("id")
    delete.add_argument("--yes", action="store_true", help="required: deletion is permanent")

    args = p.parse_args()
    if args.command == "delete" and not args.yes:
        print("Refusing to delete without --yes (this cannot be undone).", file=sys.stderr)
        return 2
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
