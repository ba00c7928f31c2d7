"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts. The handlers registered here translate each error kind into a
status code and a consistent JSON body: {"detail": ..., "error_type": ...}.

Exception hierarchy:
    BankAPIError (base)
    ├── NotFoundError                 404
    │   ├── CardNotFoundError
    │   └── UserNotFoundError
    ├── ForbiddenError                403
    ├── InvalidInputError             422
    ├── ConflictError                 409
    │   ├── DuplicateUsernameError
    │   ├── GenerationExhaustedError
    │   └── ConcurrentModificationError
    ├── InsufficientFundsError        422
    ├── CryptoFailureError            500 (generic body, cause is only logged)
    │   ├── MalformedCiphertextError
    │   ├── BlockSizeError
    │   ├── PaddingError
    │   └── InvalidKeyError
    └── InvalidCredentialsError       401
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all Bank Cards API domain errors."""

    status_code: int = 400
    error_type: str = "bank_api_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(BankAPIError):
    status_code = 404
    error_type = "not_found"


class CardNotFoundError(NotFoundError):
    """Raised when a referenced card does not exist.

    `role` distinguishes the two cards of a transfer ("Source", "Destination").
    """

    error_type = "card_not_found"

    def __init__(self, card_id: uuid.UUID, role: str = ""):
        self.card_id = card_id
        label = f"{role} card" if role else "Card"
        super().__init__(f"{label} {card_id} not found")


class UserNotFoundError(NotFoundError):
    error_type = "user_not_found"

    def __init__(self, identifier: uuid.UUID | str):
        self.identifier = identifier
        super().__init__(f"User {identifier} not found")


# ---------------------------------------------------------------------------
# Authorization / input
# ---------------------------------------------------------------------------

class ForbiddenError(BankAPIError):
    """Raised when the principal lacks rights for the requested operation."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class InvalidInputError(BankAPIError):
    """Malformed input that escaped schema validation (amounts, roles, lengths)."""

    status_code = 422
    error_type = "invalid_input"


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictError(BankAPIError):
    status_code = 409
    error_type = "conflict"


class DuplicateUsernameError(ConflictError):
    error_type = "duplicate_username"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} is already taken")


class GenerationExhaustedError(ConflictError):
    """Raised when no unused card number was found within the allowed number of attempts."""

    error_type = "generation_exhausted"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate a unique card number after {attempts} attempts")


class ConcurrentModificationError(ConflictError):
    """Raised when a card kept changing under us and retries ran out."""

    error_type = "concurrent_modification"

    def __init__(self, detail: str = "The card was modified concurrently, please retry"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Funds
# ---------------------------------------------------------------------------

class InsufficientFundsError(BankAPIError):
    """
    Raised when a transfer would cause a negative balance.

    Attributes:
        card_id: The card that lacks sufficient funds.
        requested_cents: The amount the user tried to move.
        available_cents: The current balance of the card.
    """

    status_code = 422
    error_type = "insufficient_funds"

    def __init__(
        self,
        card_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
    ):
        self.card_id = card_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient funds: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )


# ---------------------------------------------------------------------------
# Crypto
# ---------------------------------------------------------------------------

class CryptoFailureError(BankAPIError):
    """Encryption or decryption of a card number could not complete."""

    status_code = 500
    error_type = "crypto_failure"


class MalformedCiphertextError(CryptoFailureError):
    error_type = "crypto_malformed_ciphertext"


class BlockSizeError(CryptoFailureError):
    error_type = "crypto_block_size"


class PaddingError(CryptoFailureError):
    error_type = "crypto_padding"


class InvalidKeyError(CryptoFailureError):
    error_type = "crypto_invalid_key"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class InvalidCredentialsError(BankAPIError):
    """Raised when login credentials are incorrect."""

    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid username or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every domain error is rendered as {"detail": ..., "error_type": ...}
    with the status code declared on its class. Crypto failures are the
    exception: the client only sees a generic message.
    """

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "requested_cents": exc.requested_cents,
                "available_cents": exc.available_cents,
            },
        )

    @app.exception_handler(CryptoFailureError)
    async def crypto_failure_handler(
        request: Request, exc: CryptoFailureError
    ) -> JSONResponse:
        logger.error(
            "%s %s: card number cipher failure (%s): %s",
            request.method, request.url.path, exc.error_type, exc.detail,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "crypto_failure"},
        )

    @app.exception_handler(BankAPIError)
    async def bank_api_error_handler(
        request: Request, exc: BankAPIError
    ) -> JSONResponse:
        logger.warning(
            "%s %s: %s (%s)", request.method, request.url.path, exc.detail, exc.error_type
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )
