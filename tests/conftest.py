import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from elibrary_api.app.core.config import Settings
from elibrary_api.app.core.db import init_db
from elibrary_api.app.main import create_app
from elibrary_api.app.repositories import BookRepository
from elibrary_api.app.schemas.book import BookCreate
from elibrary_api.app.services.asset_store import CoverStorage
from elibrary_api.app.services.audit_service import AuditService
from elibrary_api.app.services.book_service import BookService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


def run(coro):
    return asyncio.run(coro)


def make_book(n: int = 1, **overrides) -> BookCreate:
    fields = {
        "title": f"Book {n}",
        "isbn": f"isbn-{n}",
        "year": 2000 + n,
        "publisher": f"Publisher {n}",
        "author": f"Author {n}",
    }
    fields.update(overrides)
    return BookCreate(**fields)


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def book_repo(db_path, clock):
    return BookRepository(db_path, clock=clock)


@pytest.fixture
def covers(tmp_path):
    return CoverStorage(str(tmp_path / "images"), "/images")


@pytest.fixture
def service(book_repo, covers, db_path):
    return BookService(book_repo, covers, AuditService(db_path))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="test-secret",
        database_url=str(tmp_path / "api.db"),
        upload_path=str(tmp_path / "uploads"),
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.state.book_service.books.clock = TickingClock()
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    client.post(
        "/api/v1/auth/register",
        json={
            "username": "ferdy",
            "email": "ferdy@example.com",
            "password": "secret123",
            "full_name": "Ferdy",
        },
    )
    response = client.post("/api/v1/auth/login", json={"username": "ferdy", "password": "secret123"})
    token = response.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}
