"""
Repositories: thin data access objects over the SQLite tables.

Each repository is constructed with the database path and opens a
connection per call.
"""

from .book_repository import BookRepository  # noqa: F401
from .user_repository import UserRepository  # noqa: F401
