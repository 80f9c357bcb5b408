#!/usr/bin/env python3
"""
Reset a user's password in the eLibrary SQLite database.

This script does not read or reveal any existing password.  It sets a
new PBKDF2-HMAC-SHA256 hash (format "salthex$hashhex") for the given
username.

Usage:
    python reset_password.py --db ./elibrary.db --username ferdy --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sys

from elibrary_api.app.core.security import hash_password
from elibrary_api.app.repositories import UserRepository


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Reset an eLibrary user password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file (e.g., ./elibrary.db)")
    ap.add_argument("--username", required=True, help="Username to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args(argv)

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        return 1

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if not new_password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        return 1

    users = UserRepository(args.db)
    if not users.set_password(args.username, hash_password(new_password)):
        print(f"[!] No user found with username: {args.username}", file=sys.stderr)
        return 2
    print(f"[+] Password updated for user: {args.username}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
