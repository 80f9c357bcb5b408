"""
Business logic for the book catalog.

``BookService`` coordinates the book repository and the cover image
store.  It enforces ISBN uniqueness, applies partial updates and keeps
each cover file tied to the lifetime of the record that references it:

* a cover is written before the row, so a failed upload never touches
  the database;
* if the row write then fails, the freshly written cover is removed
  again;
* a replaced or deleted record's old cover is removed only after the
  database change succeeded.

Cleanup of cover files is best effort and never masks the original
failure.  The UNIQUE constraint on ``books.isbn`` is the final guard
against two concurrent writers; the pre-check here only gives a
friendlier error in the common case.
"""

import logging
from typing import Optional

from ..core.errors import CatalogError, ConflictError, PersistenceError
from ..repositories.book_repository import BookRepository
from ..schemas.book import BookCreate, BookList, BookQuery, BookRead, BookUpdate
from .asset_store import CoverStorage, CoverUpload
from .audit_service import AuditService

logger = logging.getLogger(__name__)

ISBN_CONSTRAINT = "books.isbn"


def _isbn_conflict(isbn: str) -> ConflictError:
    return ConflictError("ISBN already exists", detail=f"ISBN {isbn} is already registered")


class BookService:
    """Catalog operations over books and their cover images."""

    def __init__(
        self,
        books: BookRepository,
        covers: CoverStorage,
        audit: Optional[AuditService] = None,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> None:
        self.books = books
        self.covers = covers
        self.audit = audit
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def _record(self, current_user, action: str, book_id: int, details: dict) -> None:
        if self.audit is not None:
            await self.audit.record(current_user, action, "book", book_id, details)

    async def create_book(
        self,
        data: BookCreate,
        cover: Optional[CoverUpload] = None,
        current_user: Optional[dict] = None,
    ) -> BookRead:
        """Create a book, storing its cover first if one was uploaded.

        Raises ``ConflictError`` if the ISBN is taken,
        ``UnsupportedMediaTypeError``/``StorageError`` if the cover
        cannot be stored and ``PersistenceError`` if the insert fails.
        """
        logger.info("User %s is creating book '%s' (%s)", (current_user or {}).get("username"), data.title, data.isbn)
        if self.books.exists_with_isbn(data.isbn, 0):
            raise _isbn_conflict(data.isbn)

        cover_ref = None
        if cover is not None:
            cover_ref = self.covers.save(cover.content, cover.filename)

        try:
            book = self.books.insert(data, cover_image=cover_ref)
        except PersistenceError as e:
            if cover_ref:
                self.covers.delete(cover_ref)
            if e.constraint == ISBN_CONSTRAINT:
                raise _isbn_conflict(data.isbn) from e
            raise

        await self._record(current_user, "create", book.id, {"title": book.title, "isbn": book.isbn})
        return book

    async def list_books(self, query: BookQuery) -> BookList:
        """Return one page of books matching ``query``.

        Page numbers below 1 become 1; a page size of zero or less
        becomes the default and sizes above the maximum are capped.
        """
        params = query.normalized(self.default_page_size, self.max_page_size)
        books, total = self.books.query(params)
        total_pages = (total + params.limit - 1) // params.limit
        return BookList(
            books=books,
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=total_pages,
        )

    async def get_book(self, book_id: int) -> BookRead:
        return self.books.get_by_id(book_id)

    async def update_book(
        self,
        book_id: int,
        update: BookUpdate,
        cover: Optional[CoverUpload] = None,
        current_user: Optional[dict] = None,
    ) -> BookRead:
        """Apply a partial update and return the stored result.

        Only fields present in ``update`` change.  An empty update with
        no cover still bumps ``updated_at``.  A new cover replaces the
        old one; the old file is removed once the row points at the new
        one.  If the row write fails the new file is removed and the
        record keeps its previous cover.
        """
        existing = self.books.get_by_id(book_id)
        changes = update.changes()

        new_isbn = changes.get("isbn")
        if new_isbn and new_isbn != existing.isbn:
            if self.books.exists_with_isbn(new_isbn, book_id):
                raise _isbn_conflict(new_isbn)

        new_cover = None
        if cover is not None:
            new_cover = self.covers.save(cover.content, cover.filename)
            changes["cover_image"] = new_cover

        try:
            if changes:
                self.books.update_partial(book_id, changes)
            else:
                self.books.touch(book_id)
        except CatalogError as e:
            if new_cover and new_cover != existing.cover_image:
                self.covers.delete(new_cover)
            if isinstance(e, PersistenceError) and e.constraint == ISBN_CONSTRAINT:
                raise _isbn_conflict(new_isbn) from e
            raise

        if new_cover and existing.cover_image and existing.cover_image != new_cover:
            self.covers.delete(existing.cover_image)

        logger.info("Book %s updated (%s)", book_id, ", ".join(sorted(changes)) or "no fields")
        await self._record(current_user, "update", book_id, {"fields": sorted(changes)})
        return self.books.get_by_id(book_id)

    async def delete_book(self, book_id: int, current_user: Optional[dict] = None) -> None:
        """Delete a book and then, best effort, its cover image."""
        existing = self.books.get_by_id(book_id)
        self.books.delete(book_id)
        if existing.cover_image:
            self.covers.delete(existing.cover_image)
        logger.info("Book %s deleted", book_id)
        await self._record(current_user, "delete", book_id, {"isbn": existing.isbn})
