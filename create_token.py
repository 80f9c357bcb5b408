"""Issue an access token for an existing user.

Usage:
    python create_token.py ferdy --days 365
"""
import argparse
import sys

from elibrary_api.app.core.config import Settings
from elibrary_api.app.repositories import UserRepository
from elibrary_api.app.services.auth_service import AuthService


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Print a bearer token for a user.")
    ap.add_argument("username")
    ap.add_argument("--days", type=int, default=None, help="Token lifetime in days (default: settings)")
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    users = UserRepository(settings.database_path)
    user = users.get_by_username(args.username)
    if user is None:
        print(f"[!] No user found with username: {args.username}", file=sys.stderr)
        return 2

    ttl = args.days * 24 * 60 * 60 if args.days else settings.access_token_expire_seconds
    service = AuthService(users, settings.secret_key, ttl)
    print(service.issue_token(user))
    return 0


if __name__ == "__main__":
    sys.exit(main())
