"""
User service — admin-side user management.

Every function takes the acting Principal and requires the ADMIN role.
Role strings from requests are parsed here: anything but "USER" or "ADMIN"
is an InvalidInputError, and only an admin may hand out ADMIN.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bankcards.exceptions import DuplicateUsernameError, InvalidInputError, UserNotFoundError
from bankcards.models.user import Role, User
from bankcards.schemas.user import Principal
from bankcards.security import hash_password
from bankcards.services import policy

logger = logging.getLogger(__name__)


def parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise InvalidInputError("Invalid role. Use 'USER' or 'ADMIN'") from None


async def username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.first() is not None


async def insert_user(db: AsyncSession, user: User) -> User:
    """
    Add and flush a new user.

    The UNIQUE index on username is the final arbiter: a concurrent insert of
    the same name that slipped past username_taken() surfaces here.
    """
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateUsernameError(user.username) from exc
    return user


async def get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def create_user(
    db: AsyncSession,
    principal: Principal,
    username: str,
    password: str,
    role: str = "USER",
) -> User:
    """
    Create a user with an explicit role.

    Raises:
        ForbiddenError: If the principal is not an admin.
        InvalidInputError: If the role string is not USER or ADMIN.
        DuplicateUsernameError: If the username is taken.
    """
    policy.require_admin(principal, "create users")
    parsed_role = parse_role(role)
    policy.authorize_role_assignment(principal, parsed_role)

    if await username_taken(db, username):
        raise DuplicateUsernameError(username)

    user = await insert_user(
        db,
        User(username=username, hashed_password=hash_password(password), role=parsed_role),
    )
    logger.info("User %s (%s) created by %s", username, parsed_role.value, principal.username)
    return user


async def delete_user(db: AsyncSession, principal: Principal, user_id: uuid.UUID) -> None:
    """Delete a user and, through the cascade, every card they own."""
    policy.require_admin(principal, "delete users")

    result = await db.execute(
        select(User).where(User.id == user_id).options(selectinload(User.cards))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)

    await db.delete(user)
    await db.flush()
    logger.info("User %s deleted by %s", user.username, principal.username)


async def update_password(
    db: AsyncSession,
    principal: Principal,
    user_id: uuid.UUID,
    password: str,
) -> User:
    policy.require_admin(principal, "change passwords")
    user = await get_user_or_404(db, user_id)
    user.hashed_password = hash_password(password)
    await db.flush()
    logger.info("Password of %s updated by %s", user.username, principal.username)
    return user


async def update_role(
    db: AsyncSession,
    principal: Principal,
    user_id: uuid.UUID,
    role: str,
) -> User:
    policy.require_admin(principal, "change roles")
    user = await get_user_or_404(db, user_id)
    parsed_role = parse_role(role)
    policy.authorize_role_assignment(principal, parsed_role)

    user.role = parsed_role
    await db.flush()
    logger.info("Role of %s set to %s by %s", user.username, parsed_role.value, principal.username)
    return user
