"""PBKDF2 credential hasher and secure token adapter."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from credential_lifecycle.application.errors import EntropyFailureError
from credential_lifecycle.application.ports.credential_hasher_port import (
    CredentialHasherPort,
    DerivedHash,
)

DEFAULT_ITERATIONS = 4096
SALT_BYTES = 128
DERIVED_KEY_BYTES = 256
_DIGEST = "sha256"


class Pbkdf2CredentialHasher(CredentialHasherPort):
    """Password hashing adapter using PBKDF2-HMAC-SHA256."""

    def __init__(self, *, iterations: int = DEFAULT_ITERATIONS) -> None:
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        self._iterations = iterations

    def derive_hash(self, password: str, salt: str | None = None) -> DerivedHash:
        if not salt:
            salt = self.random_token(SALT_BYTES)

        derived = hashlib.pbkdf2_hmac(
            _DIGEST,
            password.encode("utf-8"),
            salt.encode("utf-8"),
            self._iterations,
            dklen=DERIVED_KEY_BYTES,
        )
        return DerivedHash(salt=salt, hash=derived.hex())

    def random_token(self, byte_length: int) -> str:
        if byte_length <= 0:
            raise ValueError("byte_length must be positive")
        try:
            return secrets.token_bytes(byte_length).hex()
        except (OSError, NotImplementedError) as error:
            raise EntropyFailureError("secure random source unavailable") from error

    def matches(self, *, expected: str | None, candidate: str) -> bool:
        if expected is None:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8"))
