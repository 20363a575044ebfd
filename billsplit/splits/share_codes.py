"""
Share Code Generator

Short public codes for finalized splits. Codes use an alphabet without
look-alike characters (no O/0, no I/1) so they survive being read aloud
or typed from a screenshot.

Uniqueness is checked through an injected `exists(code)` callable and
collisions are retried with tenacity. The check and the later save are
not atomic; storage must still refuse a duplicate code.
"""

import secrets
from collections.abc import Callable
from typing import Optional

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from billsplit.config import get_settings

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

logger = structlog.get_logger("billsplit.share_codes")


class ShareCodeError(Exception):
    """Base exception for share code generation."""
    pass


class ShareCodeCollisionError(ShareCodeError):
    """A candidate code is already taken."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Share code already in use: {code}")


class ShareCodeExhaustedError(ShareCodeError):
    """No free code was found within the attempt limit."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate a unique share code after {attempts} attempts"
        )


def _check_length(length: int) -> int:
    if length <= 0:
        raise ValueError(f"Share code length must be >= 1, got {length}")
    return length


class ShareCodeGenerator:
    """
    Generates share codes that no existing session uses.

    Args:
        exists: Returns True if a code is already taken
        length: Characters per code (default from settings)
        max_attempts: Collision retries before giving up (default from settings)
        random_bytes: Source of randomness, called with a byte count
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        settings = get_settings().share_codes
        self._exists = exists
        self._length = _check_length(settings.length if length is None else length)
        self._max_attempts = max_attempts or settings.max_attempts
        self._random_bytes = random_bytes

    @property
    def length(self) -> int:
        return self._length

    def new_code(self, length: Optional[int] = None) -> str:
        """Draw one candidate code without checking uniqueness."""
        length = _check_length(self._length if length is None else length)
        buf = self._random_bytes(length)
        # 256 is a multiple of len(ALPHABET), so the modulo is unbiased
        return "".join(ALPHABET[b % len(ALPHABET)] for b in buf[:length])

    def _attempt(self, length: int) -> str:
        code = self.new_code(length)
        if self._exists(code):
            logger.debug("share_code_collision", code=code)
            raise ShareCodeCollisionError(code)
        return code

    def generate_unique(self, length: Optional[int] = None) -> str:
        """
        Return a code that `exists` reports as free.

        Raises:
            ValueError: If length <= 0
            ShareCodeExhaustedError: If every attempt collided
        """
        length = _check_length(self._length if length is None else length)

        retryer = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type(ShareCodeCollisionError),
            reraise=True,
        )
        try:
            return retryer(self._attempt, length)
        except ShareCodeCollisionError as e:
            logger.error("share_code_exhausted", attempts=self._max_attempts)
            raise ShareCodeExhaustedError(self._max_attempts) from e
