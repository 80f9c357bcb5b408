"""
Tests for BookService - uniqueness, partial updates and cover lifecycle.
"""

import threading

import pytest

from elibrary_api.app.core.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    StorageError,
    UnsupportedMediaTypeError,
)
from elibrary_api.app.schemas.book import BookQuery, BookUpdate
from elibrary_api.app.services.asset_store import CoverUpload
from elibrary_api.app.services.book_service import BookService

from .conftest import PNG_BYTES, make_book, run


def cover(name="cover.png"):
    return CoverUpload(filename=name, content=PNG_BYTES)


def stored_files(covers):
    if not covers.upload_dir.exists():
        return []
    return sorted(p.name for p in covers.upload_dir.iterdir())


def test_create_echoes_input(service):
    data = make_book(1, title="Dune", isbn="111", year=1965, publisher="Chilton", author="Herbert")

    book = run(service.create_book(data))

    assert book.id == 1
    assert (book.title, book.isbn, book.year, book.publisher, book.author) == (
        "Dune",
        "111",
        1965,
        "Chilton",
        "Herbert",
    )
    assert book.cover_image is None


def test_create_duplicate_isbn_conflicts_and_keeps_first(service):
    first = run(service.create_book(make_book(1, isbn="111")))

    with pytest.raises(ConflictError):
        run(service.create_book(make_book(2, isbn="111")))

    assert run(service.get_book(first.id)) == first
    assert run(service.list_books(BookQuery())).total == 1


def test_create_with_cover_stores_file(service, covers):
    book = run(service.create_book(make_book(1), cover("front.JPG")))

    assert book.cover_image.startswith("/images/")
    assert book.cover_image.endswith(".jpg")
    assert covers.exists(book.cover_image)


def test_create_with_bad_cover_writes_nothing(service, covers):
    with pytest.raises(UnsupportedMediaTypeError):
        run(service.create_book(make_book(1), cover("cover.gif")))

    assert run(service.list_books(BookQuery())).total == 0
    assert stored_files(covers) == []


def test_create_storage_failure_aborts_before_insert(service, monkeypatch):
    def broken_save(content, filename):
        raise StorageError("disk full")

    monkeypatch.setattr(service.covers, "save", broken_save)

    with pytest.raises(StorageError):
        run(service.create_book(make_book(1), cover()))
    assert run(service.list_books(BookQuery())).total == 0


def test_create_insert_failure_removes_uploaded_cover(service, covers, monkeypatch):
    def broken_insert(data, cover_image=None):
        raise PersistenceError("database is locked")

    monkeypatch.setattr(service.books, "insert", broken_insert)

    with pytest.raises(PersistenceError):
        run(service.create_book(make_book(1), cover()))
    assert stored_files(covers) == []


def test_create_race_on_isbn_is_caught_by_database(service, covers, monkeypatch):
    run(service.create_book(make_book(1, isbn="111")))
    # Simulate a writer that passed the pre-check before the first commit
    monkeypatch.setattr(service.books, "exists_with_isbn", lambda isbn, excluding_id=0: False)

    with pytest.raises(ConflictError):
        run(service.create_book(make_book(2, isbn="111"), cover()))

    assert stored_files(covers) == []
    assert run(service.list_books(BookQuery())).total == 1


def test_concurrent_creates_with_same_isbn_yield_one_book(db_path, covers, clock):
    from elibrary_api.app.repositories import BookRepository

    outcomes = []
    lock = threading.Lock()
    barrier = threading.Barrier(4)

    def worker(n):
        svc = BookService(BookRepository(db_path, clock=clock), covers)
        barrier.wait()
        try:
            run(svc.create_book(make_book(n, isbn="same")))
            result = "created"
        except ConflictError:
            result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "created"]


def test_list_normalizes_paging(service):
    for n in range(1, 13):
        run(service.create_book(make_book(n)))

    page = run(service.list_books(BookQuery(page=2, limit=5)))
    assert page.total == 12
    assert page.total_pages == 3
    assert [b.title for b in page.books] == ["Book 7", "Book 6", "Book 5", "Book 4", "Book 3"]

    clamped = run(service.list_books(BookQuery(page=0, limit=0)))
    assert (clamped.page, clamped.limit) == (1, 10)
    assert len(clamped.books) == 10

    capped = run(service.list_books(BookQuery(limit=1000)))
    assert capped.limit == 100
    assert capped.total_pages == 1


def test_list_empty_catalog_has_zero_pages(service):
    page = run(service.list_books(BookQuery()))

    assert (page.total, page.total_pages, page.books) == (0, 0, [])


def test_get_missing_book(service):
    with pytest.raises(NotFoundError):
        run(service.get_book(42))


def test_update_applies_only_present_fields(service):
    book = run(service.create_book(make_book(1, synopsis="old")))

    updated = run(service.update_book(book.id, BookUpdate(title="Renamed")))

    assert updated.title == "Renamed"
    assert updated.isbn == book.isbn
    assert updated.synopsis == "old"
    assert updated.updated_at > book.updated_at


def test_update_can_clear_synopsis_explicitly(service):
    book = run(service.create_book(make_book(1, synopsis="old")))

    updated = run(service.update_book(book.id, BookUpdate(synopsis="")))

    assert updated.synopsis == ""


def test_empty_update_only_advances_timestamp(service):
    book = run(service.create_book(make_book(1)))

    updated = run(service.update_book(book.id, BookUpdate()))

    assert updated.updated_at > book.updated_at
    assert updated.model_dump(exclude={"updated_at"}) == book.model_dump(exclude={"updated_at"})


def test_update_missing_book(service):
    with pytest.raises(NotFoundError):
        run(service.update_book(99, BookUpdate(title="x")))


def test_update_isbn_conflict(service):
    run(service.create_book(make_book(1, isbn="111")))
    other = run(service.create_book(make_book(2, isbn="222")))

    with pytest.raises(ConflictError):
        run(service.update_book(other.id, BookUpdate(isbn="111")))
    assert run(service.get_book(other.id)).isbn == "222"


def test_update_to_own_isbn_is_not_a_conflict(service):
    book = run(service.create_book(make_book(1, isbn="111")))

    updated = run(service.update_book(book.id, BookUpdate(isbn="111", title="Same ISBN")))

    assert updated.title == "Same ISBN"


def test_update_replaces_cover_and_removes_old_file(service, covers):
    book = run(service.create_book(make_book(1), cover("old.png")))

    updated = run(service.update_book(book.id, BookUpdate(), cover("new.jpeg")))

    assert updated.cover_image != book.cover_image
    assert covers.exists(updated.cover_image)
    assert not covers.exists(book.cover_image)


def test_update_failure_keeps_original_cover(service, covers, monkeypatch):
    book = run(service.create_book(make_book(1), cover("old.png")))

    def broken_update(book_id, changes):
        raise PersistenceError("disk I/O error")

    monkeypatch.setattr(service.books, "update_partial", broken_update)

    with pytest.raises(PersistenceError):
        run(service.update_book(book.id, BookUpdate(title="x"), cover("new.png")))

    current = run(service.get_book(book.id))
    assert current.cover_image == book.cover_image
    assert covers.exists(book.cover_image)
    assert stored_files(covers) == [covers.path_for(book.cover_image).name]


def test_update_with_bad_cover_changes_nothing(service):
    book = run(service.create_book(make_book(1)))

    with pytest.raises(UnsupportedMediaTypeError):
        run(service.update_book(book.id, BookUpdate(title="x"), cover("cover.gif")))

    assert run(service.get_book(book.id)) == book


def test_update_survives_failed_old_cover_removal(service, covers, monkeypatch):
    book = run(service.create_book(make_book(1), cover("old.png")))

    def refuse(self, *args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr("pathlib.Path.unlink", refuse)
    updated = run(service.update_book(book.id, BookUpdate(), cover("new.png")))

    assert updated.cover_image != book.cover_image


def test_delete_then_get_is_not_found(service, covers):
    book = run(service.create_book(make_book(1), cover()))

    run(service.delete_book(book.id))

    with pytest.raises(NotFoundError):
        run(service.get_book(book.id))
    assert not covers.exists(book.cover_image)


def test_delete_missing_book(service):
    with pytest.raises(NotFoundError):
        run(service.delete_book(7))


def test_mutations_are_audited(service):
    user = {"user_id": 5, "username": "ferdy"}
    book = run(service.create_book(make_book(1), current_user=user))
    run(service.update_book(book.id, BookUpdate(title="T"), current_user=user))
    run(service.delete_book(book.id, current_user=user))

    logs = run(service.audit.list_logs(object_type="book"))

    assert [entry["action"] for entry in logs] == ["delete", "update", "create"]
    assert all(entry["user_id"] == 5 and entry["object_id"] == book.id for entry in logs)
