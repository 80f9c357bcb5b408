"""
Pydantic schemas for book records.

``BookCreate`` carries the fields required to add a book,
``BookUpdate`` the fieldset of a partial update, ``BookQuery`` the
list filters and ``BookRead``/``BookList`` what the API returns.

A partial update distinguishes an absent field from a field set to a
value: only attributes explicitly given to ``BookUpdate`` appear in
:meth:`BookUpdate.changes`.  Passing ``synopsis=""`` therefore clears
the synopsis, while omitting it leaves the stored value untouched.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Columns that may never be blank once a record exists.
REQUIRED_TEXT_FIELDS = ("title", "isbn", "publisher", "author")


def _require_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class BookCreate(BaseModel):
    """Schema for creating a book."""

    title: str = Field(..., max_length=255, examples=["Dune"])
    isbn: str = Field(..., max_length=32, examples=["9780441013593"])
    year: int = Field(..., ge=1, le=9999, examples=[1965])
    publisher: str = Field(..., max_length=255, examples=["Chilton Books"])
    author: str = Field(..., max_length=255, examples=["Frank Herbert"])
    synopsis: Optional[str] = Field(None, examples=["A desert planet and its spice."])

    @field_validator("title", "isbn", "publisher", "author")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _require_text(v)


class BookUpdate(BaseModel):
    """Fieldset of a partial update.

    Every field is optional.  ``None`` is not a valid value for the
    required columns; leave the field out instead.
    """

    title: Optional[str] = Field(None, max_length=255)
    isbn: Optional[str] = Field(None, max_length=32)
    year: Optional[int] = Field(None, ge=1, le=9999)
    publisher: Optional[str] = Field(None, max_length=255)
    author: Optional[str] = Field(None, max_length=255)
    synopsis: Optional[str] = None

    @field_validator("title", "isbn", "publisher", "author", "year")
    @classmethod
    def not_null_when_given(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may be omitted but not null")
        if isinstance(v, str):
            return _require_text(v)
        return v

    def changes(self) -> Dict[str, Any]:
        """Return only the fields the caller explicitly provided."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class BookQuery(BaseModel):
    """Filters and paging for the book list.

    Empty strings and a zero year mean "no constraint".
    """

    page: int = 1
    limit: int = 10
    search: Optional[str] = None
    year: Optional[int] = Field(None, ge=0, le=9999)
    publisher: Optional[str] = None
    author: Optional[str] = None

    def normalized(self, default_limit: int = 10, max_limit: int = 100) -> "BookQuery":
        """Clamp paging values into their allowed ranges."""
        page = self.page if self.page >= 1 else 1
        limit = self.limit
        if limit <= 0:
            limit = default_limit
        if limit > max_limit:
            limit = max_limit
        return self.model_copy(update={"page": page, "limit": limit})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class BookRead(BaseModel):
    """Schema for reading a book from the API."""

    id: int
    title: str
    isbn: str
    year: int
    publisher: str
    author: str
    cover_image: Optional[str] = None
    synopsis: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }


class BookList(BaseModel):
    """A page of books plus pagination metadata."""

    books: List[BookRead]
    total: int
    page: int
    limit: int
    total_pages: int
