"""
Join code generation with bounded collision retry.

The issuer knows nothing about the database: persistence is passed in as a
callable that raises JoinCodeCollision when the code is already taken.
"""
import logging
import random
import secrets
from typing import Awaitable, Callable, Optional, TypeVar

from tripboard.domain.errors import JoinCodeCollision, JoinCodeExhaustedError

logger = logging.getLogger(__name__)

# No I, O, 0 or 1: codes are read aloud and typed by hand
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 8
DEFAULT_MAX_ATTEMPTS = 10

T = TypeVar("T")


def generate_join_code(rng: Optional[random.Random] = None) -> str:
    """Draw JOIN_CODE_LENGTH symbols uniformly from the alphabet."""
    if rng is None:
        return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
    return "".join(rng.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


class JoinCodeIssuer:
    """
    Draws codes and hands them to a persistence callback until one sticks.
    """

    def __init__(
        self,
        generate: Callable[[], str] = generate_join_code,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.generate = generate
        self.max_attempts = max_attempts

    async def issue(self, persist: Callable[[str], Awaitable[T]]) -> T:
        """
        Persist with fresh codes until success.

        Args:
            persist: Async callable taking the drawn code. Raises
                JoinCodeCollision on a duplicate; any other error propagates.

        Returns:
            Whatever persist returned for the winning code

        Raises:
            JoinCodeExhaustedError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            try:
                return await persist(code)
            except JoinCodeCollision:
                logger.warning(f"Join code collision on attempt {attempt}/{self.max_attempts}")

        logger.error(f"Unable to issue a join code after {self.max_attempts} attempts")
        raise JoinCodeExhaustedError()
