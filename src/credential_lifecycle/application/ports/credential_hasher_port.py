"""Port for password derivation and secure token generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DerivedHash:
    """Salt and derived key pair, both hex encoded."""

    salt: str
    hash: str


class CredentialHasherPort(Protocol):
    """Password hashing and random token contract."""

    def derive_hash(self, password: str, salt: str | None = None) -> DerivedHash:
        """Derive a password hash, generating a fresh salt when none is given."""

    def random_token(self, byte_length: int) -> str:
        """Return hex encoded cryptographically secure random bytes."""

    def matches(self, *, expected: str | None, candidate: str) -> bool:
        """Compare a stored secret with a computed or submitted one."""
