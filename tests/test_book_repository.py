"""
Tests for BookRepository - validates book row persistence.
"""

import pytest

from elibrary_api.app.core.errors import NotFoundError, PersistenceError, ValidationError
from elibrary_api.app.schemas.book import BookQuery

from .conftest import make_book


def test_insert_assigns_id_and_timestamps(book_repo):
    book = book_repo.insert(make_book(1, synopsis="A story"), cover_image="/images/c.png")

    assert book.id > 0
    assert book.created_at == book.updated_at
    stored = book_repo.get_by_id(book.id)
    assert stored == book
    assert stored.cover_image == "/images/c.png"
    assert stored.synopsis == "A story"


def test_get_missing_book_raises_not_found(book_repo):
    with pytest.raises(NotFoundError):
        book_repo.get_by_id(999)


def test_duplicate_isbn_is_rejected_by_the_database(book_repo):
    book_repo.insert(make_book(1, isbn="111"))

    with pytest.raises(PersistenceError) as excinfo:
        book_repo.insert(make_book(2, isbn="111"))

    assert excinfo.value.constraint == "books.isbn"


def test_ids_are_not_reused_after_delete(book_repo):
    first = book_repo.insert(make_book(1))
    book_repo.delete(first.id)
    second = book_repo.insert(make_book(2))

    assert second.id > first.id


def test_delete_missing_id_is_silent(book_repo):
    book_repo.delete(12345)


def test_exists_with_isbn_excludes_given_id(book_repo):
    book = book_repo.insert(make_book(1, isbn="111"))

    assert book_repo.exists_with_isbn("111", 0)
    assert not book_repo.exists_with_isbn("111", book.id)
    assert not book_repo.exists_with_isbn("222", 0)


def test_query_paginates_newest_first(book_repo):
    for n in range(1, 13):
        book_repo.insert(make_book(n))

    books, total = book_repo.query(BookQuery(page=2, limit=5))

    assert total == 12
    # newest first: page 1 holds books 12..8, page 2 holds 7..3
    assert [b.title for b in books] == ["Book 7", "Book 6", "Book 5", "Book 4", "Book 3"]


def test_query_filters_are_combined(book_repo):
    book_repo.insert(make_book(1, title="Dune", author="Frank Herbert", publisher="Chilton", year=1965))
    book_repo.insert(make_book(2, title="Dune Messiah", author="Frank Herbert", publisher="Putnam", year=1969))
    book_repo.insert(make_book(3, title="Emma", author="Jane Austen", publisher="John Murray", year=1815))

    _, total = book_repo.query(BookQuery(search="dune"))
    assert total == 2

    books, total = book_repo.query(BookQuery(search="herbert", year=1969))
    assert total == 1
    assert books[0].title == "Dune Messiah"

    _, total = book_repo.query(BookQuery(publisher="chil", author="herb"))
    assert total == 1

    # search matches publisher too
    _, total = book_repo.query(BookQuery(search="murray"))
    assert total == 1


def test_query_treats_empty_filters_as_unconstrained(book_repo):
    book_repo.insert(make_book(1))
    book_repo.insert(make_book(2))

    _, total = book_repo.query(BookQuery(search="", year=0, publisher="", author=""))

    assert total == 2


def test_query_search_wildcards_are_literal(book_repo):
    book_repo.insert(make_book(1, title="100% Pure"))
    book_repo.insert(make_book(2, title="Plain"))

    books, total = book_repo.query(BookQuery(search="%"))

    assert total == 1
    assert books[0].title == "100% Pure"


def test_update_partial_changes_only_given_fields(book_repo):
    book = book_repo.insert(make_book(1, synopsis="old"))

    book_repo.update_partial(book.id, {"title": "New title", "year": 1999})

    updated = book_repo.get_by_id(book.id)
    assert updated.title == "New title"
    assert updated.year == 1999
    assert updated.author == book.author
    assert updated.synopsis == "old"
    assert updated.created_at == book.created_at
    assert updated.updated_at > book.updated_at


def test_update_partial_rejects_empty_fieldset(book_repo):
    book = book_repo.insert(make_book(1))

    with pytest.raises(ValidationError):
        book_repo.update_partial(book.id, {})


def test_update_partial_rejects_unknown_columns(book_repo):
    book = book_repo.insert(make_book(1))

    with pytest.raises(ValidationError):
        book_repo.update_partial(book.id, {"id": 42})


def test_update_partial_on_missing_row_raises_not_found(book_repo):
    with pytest.raises(NotFoundError):
        book_repo.update_partial(999, {"title": "x"})


def test_touch_only_advances_updated_at(book_repo):
    book = book_repo.insert(make_book(1))

    book_repo.touch(book.id)

    touched = book_repo.get_by_id(book.id)
    assert touched.updated_at > book.updated_at
    assert touched.model_dump(exclude={"updated_at"}) == book.model_dump(exclude={"updated_at"})


def test_query_beyond_last_page_returns_no_rows(book_repo):
    book_repo.insert(make_book(1))

    books, total = book_repo.query(BookQuery(page=10**20, limit=10))

    assert books == []
    assert total == 1
