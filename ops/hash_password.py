from __future__ import annotations

import argparse
import getpass
import json
import sys

from rentdesk.core.security import hash_password


def main() -> int:
    p = argparse.ArgumentParser(description="Print a CREDENTIALS entry (bcrypt hash) for a new dashboard user.")
    p.add_argument("--username", required=True)
    p.add_argument("--display-name", help="defaults to the username")
    p.add_argument("--password", help="read from a prompt if omitted")
    args = p.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("Refusing to hash an empty password.", file=sys.stderr)
        return 2

    entry = {"username": args.username, "password_hash": hash_password(password)}
    if args.display_name:
        entry["display_name"] = args.display_name
    print(json.dumps(entry))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
