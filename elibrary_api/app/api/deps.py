"""
FastAPI dependencies that hand out the components built by ``create_app``.

Components live on ``app.state``; nothing here reads the environment.
"""

from fastapi import Request

from ..core.config import Settings
from ..services.audit_service import AuditService
from ..services.auth_service import AuthService
from ..services.book_service import BookService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_book_service(request: Request) -> BookService:
    return request.app.state.book_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_audit_service(request: Request) -> AuditService:
    return request.app.state.audit_service
