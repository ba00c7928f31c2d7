"""
Card model — a bank card owned by exactly one User.

Encryption strategy:
  - card_number_encrypted: base64(IV + AES-CBC ciphertext) of the 16-digit
    number. A fresh IV per card means equal plaintexts never produce equal
    ciphertexts, so this column cannot be searched or compared.
  - card_number_fingerprint: keyed HMAC-SHA256 of the plaintext number. This
    is the column the uniqueness check and the UNIQUE index run against.

Balance:
  `balance_cents` is integer minor units (e.g., 10.50 = 1050). A CHECK
  constraint keeps it non-negative at the database level.

Concurrency:
  `version` is SQLAlchemy's version_id_col. Every UPDATE is issued as
  "... WHERE id = :id AND version = :expected"; when another transaction
  committed first, zero rows match and the flush raises StaleDataError.
  The transfer engine catches that and retries on fresh data.

Status lifecycle:
  ACTIVE (on issue) -> BLOCKED (owner or admin) -> ACTIVE (admin)
  ACTIVE -> EXPIRED (expiry sweep once expiry_date has passed)
"""

import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import String, Integer, Date, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class CardStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    EXPIRED = "EXPIRED"


class Card(Base):
    __tablename__ = "cards"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_cards_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    card_number_encrypted: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    card_number_fingerprint: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    expiry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[CardStatus] = mapped_column(
        Enum(CardStatus),
        default=CardStatus.ACTIVE,
        nullable=False,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    version: Mapped[int] = mapped_column(
        Integer,
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

    __mapper_args__ = {"version_id_col": version}

    # --- Relationships ---
    # Eager-joined: every card projection needs the owner's username
    owner: Mapped["User"] = relationship(
        back_populates="cards",
        lazy="joined",
    )
