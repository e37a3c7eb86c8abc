"""One-time ride verification codes.

Riders read the start code to the driver at pickup and the end code at drop.
Generation and comparison live here so the comparison strategy can change
without touching the state machine.
"""

import hashlib
import hmac
import secrets
from typing import Protocol

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 6


def generate_code(length: int = MIN_CODE_LENGTH) -> str:
    """Random numeric code without a leading zero."""
    if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
        raise ValueError(
            f"Code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}, got {length}"
        )
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def generate_code_pair(length: int = MIN_CODE_LENGTH) -> tuple[str, str]:
    """Start and end codes for one ride; the two are always distinct."""
    start_code = generate_code(length)
    end_code = generate_code(length)
    while end_code == start_code:
        end_code = generate_code(length)
    return start_code, end_code


def mask_code(code: str | None) -> str:
    """Log-safe form of a code: only its length survives."""
    if not code:
        return "<none>"
    return "*" * len(code)


class CodeVerifier(Protocol):
    def verify(self, supplied: str | None, expected: str | None) -> bool: ...


class ExactMatchVerifier:
    """Constant-time comparison of the supplied and stored codes."""

    def verify(self, supplied: str | None, expected: str | None) -> bool:
        if not supplied or not expected:
            return False
        return hmac.compare_digest(str(supplied).strip().encode(), str(expected).encode())


class HashedCodeVerifier:
    """Compares fixed-length SHA-256 digests of the two codes.

    Comparison time does not depend on the length of the supplied input.
    """

    def __init__(self, pepper: str = ""):
        self._pepper = pepper

    def digest(self, code: str) -> str:
        return hashlib.sha256(f"{self._pepper}{code}".encode()).hexdigest()

    def verify(self, supplied: str | None, expected: str | None) -> bool:
        if not supplied or not expected:
            return False
        return hmac.compare_digest(
            self.digest(str(supplied).strip()).encode(), self.digest(str(expected)).encode()
        )
