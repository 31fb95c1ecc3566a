"""
auth/hashing.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt]: passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Failure contract:
  verify() collapses every mismatch -- wrong password, malformed or foreign
  hash string, over-long input -- to False. It never raises for bad data.
  hash() raises HashingError when bcrypt itself cannot work (e.g. the OS
  entropy source is unavailable); that is a system fault, not a mismatch.

The module holds no state beyond the configured cost, so one PasswordHasher
is shared by every request thread.
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of input.
MAX_PASSWORD_BYTES = 72


class HashingError(RuntimeError):
    """The hashing backend could not produce a hash."""


class PasswordHasher:
    def __init__(self, rounds: int = 10) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of plain with a fresh random salt.

        Raises ValueError for input bcrypt would silently truncate.
        """
        secret = plain.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(secret, salt).decode("utf-8")
        except (OSError, NotImplementedError) as exc:
            raise HashingError(f"bcrypt hashing failed: {exc}") from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True only if plain matches hashed. Comparison is constant-time.

        Candidates over 72 bytes never match: bcrypt 4.x would truncate them
        and accept any string sharing the stored password's first 72 bytes.
        """
        try:
            secret = plain.encode("utf-8")
            if len(secret) > MAX_PASSWORD_BYTES:
                return False
            return bcrypt.checkpw(secret, hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError, UnicodeError):
            return False
