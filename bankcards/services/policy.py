"""
Authorization policy — who may do what to which card or user.

Every function here is a pure check over the acting principal and the
already-loaded target. A denial raises ForbiddenError and nothing else
happens; the services call these after loading entities and before any
write, so a denied request never leaves a partial change behind.

Rules:
  - block card:                     owner OR admin
  - activate / delete / create card: admin
  - list all cards, manage users:   admin
  - balance, transfer:              principal owns EVERY referenced card
                                    (no admin override)
  - assigning the ADMIN role:       admin
"""

from bankcards.exceptions import ForbiddenError
from bankcards.models.card import Card
from bankcards.models.user import Role
from bankcards.schemas.user import Principal


def is_admin(principal: Principal) -> bool:
    return principal.role == Role.ADMIN


def owns(principal: Principal, card: Card) -> bool:
    return card.owner.username == principal.username


def require_admin(principal: Principal, action: str = "perform this action") -> None:
    if not is_admin(principal):
        raise ForbiddenError(f"Admin role required to {action}")


def authorize_block(principal: Principal, card: Card) -> None:
    if not (owns(principal, card) or is_admin(principal)):
        raise ForbiddenError("You do not have permission to block this card")


def authorize_owner_of_all(principal: Principal, *cards: Card) -> None:
    """Balance reads and transfers: every card must belong to the principal."""
    if not all(owns(principal, card) for card in cards):
        raise ForbiddenError("You do not have access to this card")


def authorize_role_assignment(principal: Principal, role: Role) -> None:
    if role == Role.ADMIN and not is_admin(principal):
        raise ForbiddenError("Only an admin can assign the ADMIN role")
