"""Persistence for user accounts."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..core.db import get_connection
from ..core.errors import PersistenceError

USER_COLUMNS = "id, username, email, password, full_name, created_at, updated_at"


@dataclass
class UserRecord:
    """A stored user, including the credential hash."""

    id: int
    username: str
    email: str
    password: str
    full_name: Optional[str]
    created_at: str
    updated_at: str


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    return UserRecord(**{key: row[key] for key in row.keys()})


class UserRepository:
    """Data access for the ``users`` table."""

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path

    def create(self, username: str, email: str, password_hash: str, full_name: Optional[str]) -> UserRecord:
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        conn = get_connection(self.database_path)
        try:
            cursor = conn.execute(
                "INSERT INTO users (username, email, password, full_name, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (username, email, password_hash, full_name, now, now),
            )
            user_id = cursor.lastrowid
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            constraint = "users.username" if "users.username" in str(e) else None
            raise PersistenceError("Failed to create user", detail=str(e), constraint=constraint) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError("Failed to create user", detail=str(e)) from e
        finally:
            conn.close()
        return UserRecord(
            id=user_id,
            username=username,
            email=email,
            password=password_hash,
            full_name=full_name,
            created_at=now,
            updated_at=now,
        )

    def _fetch_one(self, where: str, value) -> Optional[UserRecord]:
        conn = get_connection(self.database_path)
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE {where} = ?", (value,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to load user", detail=str(e)) from e
        finally:
            conn.close()
        return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[UserRecord]:
        return self._fetch_one("username", username)

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        return self._fetch_one("id", user_id)

    def set_password(self, username: str, password_hash: str) -> bool:
        """Replace the credential hash.  Returns False if no such user."""
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        conn = get_connection(self.database_path)
        try:
            cursor = conn.execute(
                "UPDATE users SET password = ?, updated_at = ? WHERE username = ?",
                (password_hash, now, username),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError("Failed to update password", detail=str(e)) from e
        finally:
            conn.close()
