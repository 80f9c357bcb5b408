"""
Book endpoints for API v1.

Listing and reading books is public; creating, updating and deleting
requires a bearer token.  Create and update accept multipart form data
so a cover image can be uploaded in the ``cover_image`` part.  Every
response is wrapped in the ``{success, message, data?, error?}``
envelope; failures are raised as typed errors and rendered by the
handlers installed in ``main``.
"""

from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from elibrary_api.app.api.deps import get_book_service
from elibrary_api.app.core.errors import ValidationError
from elibrary_api.app.core.security import get_current_user
from elibrary_api.app.schemas.book import BookCreate, BookQuery, BookUpdate
from elibrary_api.app.schemas.common import ok
from elibrary_api.app.services.asset_store import CoverUpload
from elibrary_api.app.services.book_service import BookService

router = APIRouter()

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _build(model: Type[ModelT], fields: Dict[str, Any]) -> ModelT:
    """Instantiate a schema, turning pydantic errors into ``ValidationError``."""
    try:
        return model(**fields)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError("Invalid request data", detail=problems) from e


def _parse_int(raw: Optional[str], name: str) -> Optional[int]:
    """Parse an optional integer form or query value; blank means absent."""
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError("Invalid request data", detail=f"{name}: must be an integer") from e


def _parse_year(raw: Optional[str]) -> Optional[int]:
    return _parse_int(raw, "year")


async def _read_cover(upload: Optional[UploadFile]) -> Optional[CoverUpload]:
    # Browsers send an empty part when no file was chosen
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return CoverUpload(filename=upload.filename, content=content)


@router.get("")
async def list_books(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    publisher: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    service: BookService = Depends(get_book_service),
) -> dict:
    """List books, newest first.

    - **page**, **limit** — pagination; out-of-range values are clamped.
    - **search** — substring of title, author or publisher.
    - **year** — exact publication year (1-9999).
    - **publisher**, **author** — substring filters.

    Empty parameters are treated as absent, so a form that submits
    every field unfilled lists the whole catalog.
    """
    fields = {
        "page": _parse_int(page, "page"),
        "limit": _parse_int(limit, "limit"),
        "search": search,
        "year": _parse_year(year),
        "publisher": publisher,
        "author": author,
    }
    query = _build(BookQuery, {k: v for k, v in fields.items() if v is not None})
    result = await service.list_books(query)
    return ok("Books retrieved successfully", result.model_dump())


@router.get("/{book_id}")
async def get_book(book_id: int, service: BookService = Depends(get_book_service)) -> dict:
    book = await service.get_book(book_id)
    return ok("Book retrieved successfully", book.model_dump())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(
    title: str = Form(...),
    isbn: str = Form(...),
    year: str = Form(...),
    publisher: str = Form(...),
    author: str = Form(...),
    synopsis: Optional[str] = Form(None),
    cover_image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
) -> dict:
    """Create a book.  Requires authentication.

    Returns 409 if the ISBN already exists and 400 for missing fields
    or a cover that is not a JPG/JPEG/PNG file.
    """
    data = _build(
        BookCreate,
        {
            "title": title,
            "isbn": isbn,
            "year": _parse_year(year),
            "publisher": publisher,
            "author": author,
            "synopsis": synopsis or None,
        },
    )
    book = await service.create_book(data, await _read_cover(cover_image), current_user)
    return ok("Book created successfully", book.model_dump())


@router.patch("/{book_id}")
async def update_book(
    book_id: int,
    title: Optional[str] = Form(None),
    isbn: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    publisher: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    synopsis: Optional[str] = Form(None),
    cover_image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
) -> dict:
    """Partially update a book.  Requires authentication.

    Form fields that are missing or empty leave the stored value
    unchanged, as does a year of 0.  Uploading ``cover_image`` replaces
    the current cover.
    """
    new_year = _parse_year(year)
    submitted = {
        "title": title,
        "isbn": isbn,
        "year": new_year if new_year != 0 else None,
        "publisher": publisher,
        "author": author,
        "synopsis": synopsis,
    }
    update = _build(BookUpdate, {k: v for k, v in submitted.items() if v not in (None, "")})
    book = await service.update_book(book_id, update, await _read_cover(cover_image), current_user)
    return ok("Book updated successfully", book.model_dump())


@router.delete("/{book_id}")
async def delete_book(
    book_id: int,
    current_user: dict = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
) -> dict:
    """Delete a book and its cover image.  Requires authentication."""
    await service.delete_book(book_id, current_user)
    return ok("Book deleted successfully")
