"""
Authentication endpoints for API v1.

Registration stores a salted password hash; login returns a signed
bearer token carrying the user's id and username.
"""

from fastapi import APIRouter, Depends, status

from elibrary_api.app.api.deps import get_auth_service
from elibrary_api.app.schemas.common import ok
from elibrary_api.app.schemas.user import LoginRequest, RegisterRequest
from elibrary_api.app.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> dict:
    """Register a new user.  Returns 409 if the username is taken."""
    user = await service.register(body)
    return ok("User registered successfully", user.model_dump())


@router.post("/login")
async def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> dict:
    """Exchange username and password for an access token."""
    result = await service.login(body)
    return ok("Login successful", result.model_dump())
