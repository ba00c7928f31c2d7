"""
Card number cipher — encryption at rest, masking, and fingerprints.

Format of an encrypted card number:

    base64( IV (16 bytes) || AES-CBC( PKCS7-pad( ascii digits ) ) )

A fresh random IV per call means encrypting the same number twice gives two
different blobs. That also means ciphertexts cannot be compared, so the
uniqueness check uses `fingerprint()`, a keyed HMAC-SHA256 of the plaintext.

Decryption failures are classified so the logs say what went wrong:

  - MalformedCiphertextError: not base64, or shorter than one IV
  - BlockSizeError:           ciphertext body not a multiple of 16 bytes
  - PaddingError:             PKCS7 padding check failed (usually a wrong key)
  - InvalidKeyError:          configured key is not 16/24/32 bytes

All of them derive from CryptoFailureError, which the HTTP layer renders as
a generic 500.

This is encryption at rest, not a compliance-grade tokenization scheme:
there is no key rotation and no HSM.
"""

import base64
import binascii
import os
from functools import lru_cache

from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from bankcards.config import settings
from bankcards.exceptions import (
    BlockSizeError,
    InvalidInputError,
    InvalidKeyError,
    MalformedCiphertextError,
    PaddingError,
)
from bankcards.services.card_numbers import CARD_NUMBER_LENGTH

IV_SIZE = 16
BLOCK_SIZE_BITS = 128
VALID_KEY_SIZES = (16, 24, 32)


def mask_card_number(plaintext: str) -> str:
    """Display form of a card number: only the last four digits are visible."""
    return f"**** **** **** {plaintext[-4:]}"


class CardNumberCipher:
    """AES-CBC cipher for 16-digit card numbers. Stateless per call, safe to share."""

    def __init__(self, key: bytes):
        self._key = key

    def _check_key(self) -> None:
        if len(self._key) not in VALID_KEY_SIZES:
            raise InvalidKeyError(
                f"Card encryption key must be 16, 24 or 32 bytes, got {len(self._key)}"
            )

    def encrypt(self, plaintext: str) -> str:
        if len(plaintext) != CARD_NUMBER_LENGTH:
            raise InvalidInputError(
                f"Card number must contain exactly {CARD_NUMBER_LENGTH} characters"
            )
        self._check_key()

        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        self._check_key()
        try:
            combined = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedCiphertextError("Encrypted card number is not valid base64") from exc

        if len(combined) <= IV_SIZE:
            raise MalformedCiphertextError("Encrypted card number is too short")

        iv, body = combined[:IV_SIZE], combined[IV_SIZE:]
        if len(body) % (BLOCK_SIZE_BITS // 8) != 0:
            raise BlockSizeError(
                f"Ciphertext length {len(body)} is not a multiple of the AES block size"
            )

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()

        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise PaddingError("Invalid padding in encrypted card number") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PaddingError("Decrypted card number is not valid text") from exc

    def fingerprint(self, plaintext: str) -> str:
        """Keyed HMAC-SHA256 hex digest of a card number, for equality lookups."""
        mac = hmac.HMAC(self._key, hashes.SHA256())
        mac.update(plaintext.encode("utf-8"))
        return mac.finalize().hex()


@lru_cache
def get_cipher() -> CardNumberCipher:
    """Process-wide cipher built from CARD_ENCRYPTION_KEY."""
    return CardNumberCipher(settings.CARD_ENCRYPTION_KEY.encode("utf-8"))
