"""
Pydantic schemas for users and the authenticated principal.

hashed_password is NEVER included in any response schema.

Role fields on requests are plain strings on purpose: the service layer
parses them and rejects anything other than USER/ADMIN with an
InvalidInputError, so the rule lives in one place.
"""

import uuid

from pydantic import BaseModel, Field

from bankcards.models.user import Role
from bankcards.schemas.card import CardResponse


class Principal(BaseModel):
    """The authenticated identity acting on a request."""
    username: str
    role: Role

    model_config = {"frozen": True}


class UserCreateRequest(BaseModel):
    """Request body for POST /admin/users."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=4, max_length=100)
    role: str = "USER"


class PasswordUpdateRequest(BaseModel):
    """Request body for PUT /admin/users/{id}/password."""
    password: str = Field(min_length=4, max_length=100)


class RoleUpdateRequest(BaseModel):
    """Request body for PUT /admin/users/{id}/role."""
    role: str


class UserResponse(BaseModel):
    """Public representation of a user, with display projections of their cards."""
    id: uuid.UUID
    username: str
    role: Role
    cards: list[CardResponse] = []
