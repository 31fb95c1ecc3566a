"""
auth/store.py -- Credential lookup.

Pattern: Repository. The pipeline depends on the CredentialStore protocol
only, so a database-backed store can replace the in-memory roster without
touching the pipeline.

InMemoryCredentialStore indexes a fixed roster by username once at
construction. It exposes no mutation, so concurrent lookups need no locking.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional, Protocol

from auth.hashing import PasswordHasher
from auth.models import Account

# Built-in demo accounts: (id, username, plaintext). Hashed at startup so the
# plaintext never needs to live anywhere but here.
_SEED_ACCOUNTS = (
    ("1", "admin", "admin123"),
    ("2", "user", "user123"),
)


class CredentialStore(Protocol):
    def find_by_username(self, username: str) -> Optional[Account]: ...


class InMemoryCredentialStore:
    """Read-only roster keyed by exact, case-sensitive username."""

    def __init__(self, accounts: Iterable[Account]) -> None:
        by_username: dict[str, Account] = {}
        for account in accounts:
            if account.username in by_username:
                raise ValueError(f"duplicate username in roster: {account.username!r}")
            by_username[account.username] = account
        self._accounts = by_username

    def find_by_username(self, username: str) -> Optional[Account]:
        """Return the matching Account, or None. Absence is not an error."""
        return self._accounts.get(username)

    def __len__(self) -> int:
        return len(self._accounts)


def seed_accounts(hasher: PasswordHasher) -> list[Account]:
    """Hash the built-in demo roster with the configured cost."""
    return [
        Account(id=account_id, username=username, password_hash=hasher.hash(plain))
        for account_id, username, plain in _SEED_ACCOUNTS
    ]
