"""
Pydantic schemas for authentication endpoints (signup, login, refresh).

Passwords and tokens only ever appear in request/response bodies; they are
never echoed back in error messages or written to logs.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""
    login: str = Field(min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8)


class SignupResponse(BaseModel):
    user_id: uuid.UUID
    login: str
    email: str
    roles: list[str]


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    login: str
    password: str


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh."""
    refresh_token: str


class TokenResponse(BaseModel):
    """Response body for a successful login — access and refresh tokens."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessTokenResponse(BaseModel):
    """Response body for a successful refresh — a new access token only."""
    access_token: str
    token_type: str = "bearer"
