"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table and
other modules can import from bankcards.models directly.
"""

from bankcards.models.user import User, Role  # noqa: F401
from bankcards.models.card import Card, CardStatus  # noqa: F401
