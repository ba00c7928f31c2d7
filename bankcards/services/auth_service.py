"""
Authentication service — registration and login business logic.

Registration flow:
  1. Check the username is free
  2. Hash the password with Argon2id
  3. Create the User with role USER (self-service never grants ADMIN)
  4. Return a JWT so the user is immediately logged in

Login flow:
  1. Look up user by username
  2. Verify password against stored hash
  3. Return a JWT

Login returns the same error for "wrong password" and "unknown username"
to prevent user enumeration.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.exceptions import DuplicateUsernameError, InvalidCredentialsError
from bankcards.models.user import Role, User
from bankcards.security import create_access_token, hash_password, verify_password
from bankcards.services.user_service import insert_user, username_taken

logger = logging.getLogger(__name__)


async def register(
    db: AsyncSession,
    username: str,
    password: str,
) -> tuple[User, str]:
    """
    Register a new USER.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        DuplicateUsernameError: If the username is already registered.
    """
    if await username_taken(db, username):
        raise DuplicateUsernameError(username)

    user = await insert_user(
        db,
        User(username=username, hashed_password=hash_password(password), role=Role.USER),
    )
    logger.info("Registered user %s", username)

    token = create_access_token(user.username)
    return user, token


async def login(
    db: AsyncSession,
    username: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If the username doesn't exist or the password is wrong.
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", username)
        raise InvalidCredentialsError()

    token = create_access_token(user.username)
    return user, token
