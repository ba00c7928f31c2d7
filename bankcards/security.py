"""
Password hashing (passlib Argon2id) and bearer tokens (python-jose HS256).

A token names its user by username in the "sub" claim. The role is not
carried in the token; it is read from the database on every request, so a
role change or a deleted user takes effect without reissuing tokens.

Card number encryption lives in bankcards.services.card_cipher.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from bankcards.config import settings


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(username: str, expires_delta: timedelta | None = None) -> str:
    """
    Sign a token for `username`.

    A negative `expires_delta` yields an already-expired token.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": username, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Raises:
        JWTError: If the token is expired, tampered with, or malformed.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def token_subject(token: str) -> str | None:
    """The username a valid token was issued to, or None."""
    try:
        claims = decode_access_token(token)
    except JWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None
