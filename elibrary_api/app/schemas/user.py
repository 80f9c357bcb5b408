"""
Pydantic models for user accounts.

Defines schemas for registration, login and reading user information.
The stored credential hash is never part of a response schema.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, examples=["ferdy"])
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$", examples=["ferdy@example.com"])
    password: str = Field(..., min_length=6, examples=["strongpassword"])
    full_name: str = Field(..., min_length=1, max_length=100, examples=["Ferdy Adr"])


class LoginRequest(BaseModel):
    username: str
    password: str


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }


class LoginResponse(BaseModel):
    token: str
    user: UserRead
