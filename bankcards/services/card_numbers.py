"""
Card number generation and Luhn validation.

Generated numbers look like Visa numbers: a fixed brand digit "4", fourteen
random digits, and a Luhn check digit. A candidate is only accepted when
storage reports it unused; the number of candidates tried is bounded so a
saturated number space surfaces as GenerationExhaustedError instead of an
endless loop.
"""

import random
from typing import Awaitable, Callable

from bankcards.exceptions import GenerationExhaustedError

BRAND_PREFIX = "4"
CARD_NUMBER_LENGTH = 16


def luhn_check_digit(prefix: str) -> int:
    """Compute the Luhn check digit to append to `prefix`."""
    total = 0
    double = True  # the rightmost prefix digit sits next to the check digit
    for char in reversed(prefix):
        digit = int(char)
        if double:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
        double = not double
    return (10 - total % 10) % 10


def is_luhn_valid(number: str) -> bool:
    """True if `number` is all digits and its last digit is a valid Luhn check digit."""
    if len(number) < 2 or not number.isdigit():
        return False
    return luhn_check_digit(number[:-1]) == int(number[-1])


def random_card_number(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    body = "".join(str(rng.randint(0, 9)) for _ in range(CARD_NUMBER_LENGTH - 2))
    prefix = BRAND_PREFIX + body
    return prefix + str(luhn_check_digit(prefix))


async def generate_card_number(
    exists: Callable[[str], Awaitable[bool]],
    max_attempts: int = 1000,
    rng: random.Random | None = None,
) -> str:
    """
    Generate a Luhn-valid 16-digit number that `exists` reports as unused.

    Args:
        exists: Async predicate answering "is this number already issued?".
        max_attempts: How many candidates to try before giving up.
        rng: Optional random source (tests pass a seeded one).

    Raises:
        GenerationExhaustedError: If every candidate was already taken.
    """
    rng = rng or random.Random()
    for _ in range(max_attempts):
        candidate = random_card_number(rng)
        if not await exists(candidate):
            return candidate
    raise GenerationExhaustedError(max_attempts)
