"""
User model — the authentication identity and card owner.

Each User is a login credential (username + hashed password) with exactly
one role:

  - ADMIN: issues, activates and deletes cards; manages users
  - USER:  the default for self-service registration; manages own cards

The password is stored as an Argon2id hash, never in plaintext.

Deleting a user deletes every card they own (ORM cascade plus ON DELETE
CASCADE on the foreign key).
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class Role(str, enum.Enum):
    """
    The role a user holds within the system.

    Inherits from str so the value serializes naturally to JSON and can be
    compared against raw role strings coming from requests.
    """
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identifier, unique and indexed
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[Role] = mapped_column(
        Enum(Role),
        default=Role.USER,
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    cards: Mapped[list["Card"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        order_by="Card.created_at",
    )
