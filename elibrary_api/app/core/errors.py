"""
Typed failures raised by repositories and services.

Every error carries the HTTP status the API layer responds with.  The
exception handlers installed in ``main`` match on the class, never on
the message text.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for all expected failures."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """Malformed or missing input.  Never reaches storage."""

    status_code = 400


class UnsupportedMediaTypeError(ValidationError):
    """Uploaded file has an extension outside the allow-list."""


class AuthenticationError(CatalogError):
    status_code = 401


class NotFoundError(CatalogError):
    status_code = 404


class ConflictError(CatalogError):
    """A unique attribute (ISBN, username) is already taken."""

    status_code = 409


class PersistenceError(CatalogError):
    """The database rejected or failed an operation.

    ``constraint`` names the unique column that was violated
    (e.g. ``"books.isbn"``) when the failure is a uniqueness violation.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        constraint: Optional[str] = None,
    ) -> None:
        super().__init__(message, detail)
        self.constraint = constraint


class StorageError(CatalogError):
    """Filesystem failure while writing a cover image."""

    status_code = 500
