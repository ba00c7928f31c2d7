"""
Authentication router — registration and login endpoints.

These are the only public (unauthenticated) endpoints besides /health.

Endpoints:
  POST /auth/register — Register a new USER and get a token
  POST /auth/login    — Authenticate and get a token

Plaintext passwords exist only in memory during request processing; they
are hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from bankcards.services import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user with role USER and return a JWT.

    - **username**: 3-50 characters, must be unique
    - **password**: 4-100 characters
    """
    _, token = await auth_service.register(
        db=db,
        username=request.username,
        password=request.password,
    )
    return TokenResponse(token=token)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with username and password.

    Use the returned token on every other request:

        Authorization: Bearer <token>
    """
    _, token = await auth_service.login(
        db=db,
        username=request.username,
        password=request.password,
    )
    return TokenResponse(token=token)
