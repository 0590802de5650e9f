"""
Authentication router — signup, login and token refresh.

These are the only public (unauthenticated) endpoints in the API.
Everything else requires a valid access token.

Endpoints:
  POST /auth/signup   — Register a new user (USER role)
  POST /auth/login    — Exchange login + password for access and refresh tokens
  POST /auth/refresh  — Exchange a refresh token for a new access token

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - Refresh tokens are persisted as SHA-256 digests only.
  - Tokens appear only in response bodies, which are not logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
)
from bankcards.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user with the USER role.

    - **login**: 3-64 characters, must not be taken
    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    """
    user = await auth_service.signup(
        db=db,
        login=request.login,
        email=request.email,
        password=request.password,
    )
    return SignupResponse(
        user_id=user.id,
        login=user.login,
        email=user.email,
        roles=user.role_names,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get tokens",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with login and password.

    The access token goes in the Authorization header of later requests
    (`Authorization: Bearer <token>`) and expires after
    ACCESS_TOKEN_EXPIRE_MINUTES. The refresh token lasts
    REFRESH_TOKEN_EXPIRE_DAYS and can be used any number of times.
    """
    tokens = await auth_service.login(db=db, login=request.login, password=request.password)
    return TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    summary="Get a new access token",
)
async def refresh(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new access token. The refresh token stays valid."""
    access_token = await auth_service.refresh(db, request.refresh_token)
    return AccessTokenResponse(access_token=access_token)
