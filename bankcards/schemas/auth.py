"""
Pydantic schemas for authentication endpoints (register and login).

If a required field is missing or the wrong type, FastAPI returns a 422
error before our code runs.
"""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=4, max_length=100)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    username: str
    password: str


class TokenResponse(BaseModel):
    """Response body for successful register/login: the JWT."""
    token: str
    token_type: str = "bearer"
