"""
Admin router — card issuance, lifecycle and user management.

Every route here sits behind require_admin_principal, and the services
check the ADMIN role again (see bankcards.services.policy). A USER calling
any of these gets 403.

Endpoints:
  POST   /admin/cards                     — Issue a card to a user
  GET    /admin/cards                     — List ALL cards
  PUT    /admin/cards/{card_id}/activate  — Activate a card
  PUT    /admin/cards/{card_id}/block     — Block a card
  DELETE /admin/cards/{card_id}           — Delete a card
  POST   /admin/users                     — Create a user with a role
  GET    /admin/users                     — List users (with their cards)
  DELETE /admin/users/{user_id}           — Delete a user and their cards
  PUT    /admin/users/{user_id}/password  — Reset a user's password
  PUT    /admin/users/{user_id}/role      — Change a user's role
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.config import settings
from bankcards.database import get_db
from bankcards.dependencies import get_current_principal, require_admin_principal
from bankcards.schemas.card import CardCreateRequest, CardResponse
from bankcards.schemas.page import Page
from bankcards.schemas.user import (
    PasswordUpdateRequest,
    Principal,
    RoleUpdateRequest,
    UserCreateRequest,
    UserResponse,
)
from bankcards.services import card_service, listing_service, user_service

router = APIRouter(dependencies=[Depends(require_admin_principal)])


# ---------------------------------------------------------------------------
# Card admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Issue a card",
)
async def create_card(
    request: CardCreateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new ACTIVE card to an existing user.

    - **owner_username**: The future owner
    - **expiry_date**: Must be in the future
    - **initial_balance_cents**: Non-negative opening balance in cents
    """
    return await card_service.create_card(
        db=db,
        principal=principal,
        owner_username=request.owner_username,
        expiry_date=request.expiry_date,
        initial_balance_cents=request.initial_balance_cents,
    )


@router.get(
    "/cards",
    response_model=Page[CardResponse],
    summary="[Admin] List all cards",
)
async def list_all_cards(
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await listing_service.list_all_cards(db, principal, page=page, size=size)


@router.put(
    "/cards/{card_id}/activate",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Activate a card",
)
async def activate_card(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await card_service.activate_card(db, principal, card_id)


@router.put(
    "/cards/{card_id}/block",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Block a card",
)
async def block_card(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await card_service.block_card(db, principal, card_id)


@router.delete(
    "/cards/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a card",
)
async def delete_card(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await card_service.delete_card(db, principal, card_id)


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a user",
)
async def create_user(
    request: UserCreateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create a user with role USER or ADMIN."""
    user = await user_service.create_user(
        db=db,
        principal=principal,
        username=request.username,
        password=request.password,
        role=request.role,
    )
    return UserResponse(id=user.id, username=user.username, role=user.role, cards=[])


@router.get(
    "/users",
    response_model=Page[UserResponse],
    summary="[Admin] List users",
)
async def list_users(
    username: str | None = Query(None, description="Substring of the username"),
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List users with their cards (masked)."""
    return await listing_service.list_users(
        db, principal, username=username, page=page, size=size
    )


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user",
)
async def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user. Their cards are deleted with them."""
    await user_service.delete_user(db, principal, user_id)


@router.put(
    "/users/{user_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Reset a user's password",
)
async def update_password(
    user_id: uuid.UUID,
    request: PasswordUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await user_service.update_password(db, principal, user_id, request.password)


@router.put(
    "/users/{user_id}/role",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Change a user's role",
)
async def update_role(
    user_id: uuid.UUID,
    request: RoleUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await user_service.update_role(db, principal, user_id, request.role)
