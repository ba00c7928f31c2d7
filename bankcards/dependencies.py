"""
FastAPI dependencies for authentication.

  get_current_user (JWT -> User)
      └── get_current_principal (User -> Principal)
              └── require_admin_principal (403 unless ADMIN)

Routes only ask for the Principal (username + role) and pass it to the
services, which decide authorization themselves through
bankcards.services.policy. Nothing here keeps per-request global state.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.models.user import User
from bankcards.schemas.user import Principal
from bankcards.security import token_subject
from bankcards.services import policy


# Looks for "Authorization: Bearer <token>"; tokenUrl feeds Swagger UI's
# "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    username = token_subject(token)
    if username is None:
        raise credentials_exception

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def get_current_principal(
    user: User = Depends(get_current_user),
) -> Principal:
    """The authenticated identity as the services see it."""
    return Principal(username=user.username, role=user.role)


async def require_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Require the ADMIN role for a whole router.

    The services check roles again for each operation; this gate makes
    every /admin/* route reject USERs up front, including routes whose
    service would otherwise let an owner through (blocking one's own card).

    Raises:
        ForbiddenError: If the principal is not an admin (rendered as 403).
    """
    policy.require_admin(principal, "access admin endpoints")
    return principal
