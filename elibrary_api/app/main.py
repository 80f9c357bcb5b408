"""
Main entrypoint for the eLibrary API.

This module assembles the FastAPI application.  ``create_app`` sets
up logging, applies database migrations, builds every repository and
service with explicit configuration, installs the error handlers that
render failures as response envelopes and mounts the versioned routers
and the cover image directory.  Run it with uvicorn in factory mode,
e.g.::

    uvicorn --factory elibrary_api.app.main:create_app --reload
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.router import router as v1_router
from .core.config import Settings
from .core.db import init_db
from .core.errors import CatalogError
from .core.logging_config import setup_logging
from .repositories import BookRepository, UserRepository
from .schemas.common import fail
from .services.asset_store import CoverStorage
from .services.audit_service import AuditService
from .services.auth_service import AuthService
from .services.book_service import BookService

logger = logging.getLogger(__name__)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(exc.message, exc.detail or exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content=fail("Invalid request data", problems))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=fail("Internal server error", str(exc)))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use.  Defaults to :meth:`Settings.from_env`.

    Returns
    -------
    FastAPI
        A configured application whose components are available on
        ``app.state``.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    database_path = settings.database_path
    init_db(database_path)
    Path(settings.upload_path).mkdir(parents=True, exist_ok=True)

    users = UserRepository(database_path)
    audit = AuditService(database_path)
    covers = CoverStorage(settings.upload_path, settings.images_url_prefix)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.state.settings = settings
    app.state.users = users
    app.state.audit_service = audit
    app.state.covers = covers
    app.state.book_service = BookService(
        BookRepository(database_path),
        covers,
        audit,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
    app.state.auth_service = AuthService(
        users,
        settings.secret_key,
        settings.access_token_expire_seconds,
        audit,
    )

    _install_error_handlers(app)
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "message": "eLibrary API is running"}

    # Covers are served straight from the upload directory.
    app.mount(
        covers.url_prefix,
        StaticFiles(directory=str(covers.upload_dir)),
        name="images",
    )

    logger.info("eLibrary API ready (database %s, covers %s)", database_path, covers.upload_dir)
    return app

