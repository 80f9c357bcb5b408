"""
Persistence for book rows.

``BookRepository`` wraps the ``books`` table.  It opens a short-lived
connection per operation, maps rows to ``BookRead`` and turns driver
errors into :class:`PersistenceError`.  The repository enforces no
business rules beyond what the schema declares; uniqueness checks and
image handling live in ``BookService``.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.db import get_connection
from ..core.errors import NotFoundError, PersistenceError, ValidationError
from ..schemas.book import BookCreate, BookQuery, BookRead

logger = logging.getLogger(__name__)

BOOK_COLUMNS = (
    "id, title, isbn, year, publisher, author, cover_image, synopsis, created_at, updated_at"
)

# Largest value SQLite accepts for LIMIT/OFFSET parameters.
SQLITE_MAX_INTEGER = 2**63 - 1

# Columns a partial update may touch.
UPDATABLE_COLUMNS = ("title", "isbn", "year", "publisher", "author", "cover_image", "synopsis")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _violated_constraint(exc: sqlite3.IntegrityError) -> Optional[str]:
    """Return ``table.column`` for a UNIQUE violation, else ``None``."""
    message = str(exc)
    prefix = "UNIQUE constraint failed: "
    if message.startswith(prefix):
        return message[len(prefix):].split(",")[0].strip()
    return None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_book(row: sqlite3.Row) -> BookRead:
    return BookRead(
        id=row["id"],
        title=row["title"],
        isbn=row["isbn"],
        year=row["year"],
        publisher=row["publisher"],
        author=row["author"],
        cover_image=row["cover_image"] or None,
        synopsis=row["synopsis"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class BookRepository:
    """Data access for the ``books`` table.

    Parameters
    ----------
    database_path : str
        Path of the SQLite file; migrations must already be applied.
    clock : Callable[[], datetime], optional
        Source of creation/modification timestamps.  Defaults to UTC now.
    """

    def __init__(self, database_path: str, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.database_path = database_path
        self.clock = clock or utc_now

    def _timestamp(self) -> str:
        return self.clock().isoformat(timespec="microseconds")

    def insert(self, data: BookCreate, cover_image: Optional[str] = None) -> BookRead:
        """Insert a row and return it with its assigned id.

        Raises ``PersistenceError`` on constraint violations (with
        ``constraint="books.isbn"`` for a duplicate ISBN) or driver
        failures.
        """
        now = self._timestamp()
        conn = get_connection(self.database_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO books (title, isbn, year, publisher, author, cover_image, synopsis, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.title,
                    data.isbn,
                    data.year,
                    data.publisher,
                    data.author,
                    cover_image,
                    data.synopsis,
                    now,
                    now,
                ),
            )
            book_id = cursor.lastrowid
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise PersistenceError(
                "Failed to insert book", detail=str(e), constraint=_violated_constraint(e)
            ) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError("Failed to insert book", detail=str(e)) from e
        finally:
            conn.close()
        return BookRead(
            id=book_id,
            cover_image=cover_image,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

    def get_by_id(self, book_id: int) -> BookRead:
        """Return the book with ``book_id`` or raise ``NotFoundError``."""
        conn = get_connection(self.database_path)
        try:
            row = conn.execute(
                f"SELECT {BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to load book", detail=str(e)) from e
        finally:
            conn.close()
        if not row:
            raise NotFoundError("Book not found", detail=f"Book {book_id} not found")
        return _row_to_book(row)

    def query(self, params: BookQuery) -> Tuple[List[BookRead], int]:
        """Return one page of matching books and the total match count.

        Filters are combined with AND.  ``search`` matches a substring
        of title, author or publisher.  Results are newest first.
        """
        where_clauses: List[str] = []
        args: List[Any] = []
        if params.search:
            term = f"%{_escape_like(params.search)}%"
            where_clauses.append(
                "(title LIKE ? ESCAPE '\\' OR author LIKE ? ESCAPE '\\' OR publisher LIKE ? ESCAPE '\\')"
            )
            args.extend([term, term, term])
        if params.year:
            where_clauses.append("year = ?")
            args.append(params.year)
        if params.publisher:
            where_clauses.append("publisher LIKE ? ESCAPE '\\'")
            args.append(f"%{_escape_like(params.publisher)}%")
        if params.author:
            where_clauses.append("author LIKE ? ESCAPE '\\'")
            args.append(f"%{_escape_like(params.author)}%")
        where_sql = " WHERE " + " AND ".join(where_clauses) if where_clauses else ""

        conn = get_connection(self.database_path)
        try:
            total = conn.execute(
                f"SELECT COUNT(*) AS count FROM books{where_sql}", tuple(args)
            ).fetchone()["count"]
            rows = []
            # A page past the end of the table is empty
            if params.offset < total:
                rows = conn.execute(
                    f"SELECT {BOOK_COLUMNS} FROM books{where_sql} "
                    "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                    tuple(args) + (min(params.limit, SQLITE_MAX_INTEGER), params.offset),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to query books", detail=str(e)) from e
        finally:
            conn.close()
        return [_row_to_book(row) for row in rows], total

    def update_partial(self, book_id: int, changes: Dict[str, Any]) -> None:
        """Apply ``changes`` to a row and bump ``updated_at``.

        ``changes`` maps column names to new values; only those columns
        are written.  An empty mapping is rejected with
        ``ValidationError`` before touching the database.  Raises
        ``NotFoundError`` if no row was affected.
        """
        if not changes:
            raise ValidationError("No fields to update")
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValidationError("Unknown fields", detail=", ".join(sorted(unknown)))
        columns = [c for c in UPDATABLE_COLUMNS if c in changes]
        assignments = [f"{c} = ?" for c in columns] + ["updated_at = ?"]
        values = [changes[c] for c in columns] + [self._timestamp(), book_id]
        self._execute_update(book_id, ", ".join(assignments), values)

    def touch(self, book_id: int) -> None:
        """Bump ``updated_at`` without changing any other column."""
        self._execute_update(book_id, "updated_at = ?", [self._timestamp(), book_id])

    def _execute_update(self, book_id: int, assignments: str, values: List[Any]) -> None:
        conn = get_connection(self.database_path)
        try:
            cursor = conn.execute(f"UPDATE books SET {assignments} WHERE id = ?", tuple(values))
            affected = cursor.rowcount
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise PersistenceError(
                "Failed to update book", detail=str(e), constraint=_violated_constraint(e)
            ) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError("Failed to update book", detail=str(e)) from e
        finally:
            conn.close()
        if affected == 0:
            raise NotFoundError("Book not found", detail=f"Book {book_id} not found")

    def delete(self, book_id: int) -> None:
        """Delete a row.  Deleting a missing id is not reported."""
        conn = get_connection(self.database_path)
        try:
            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError("Failed to delete book", detail=str(e)) from e
        finally:
            conn.close()

    def exists_with_isbn(self, isbn: str, excluding_id: int = 0) -> bool:
        """True if another row (id != ``excluding_id``) already uses ``isbn``."""
        conn = get_connection(self.database_path)
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM books WHERE isbn = ? AND id != ?",
                (isbn, excluding_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to check ISBN", detail=str(e)) from e
        finally:
            conn.close()
        return row["count"] > 0
