"""Credential persistence and field-mutation rules."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from credential_lifecycle.application.errors import CredentialNotFoundError
from credential_lifecycle.application.ports.credential_hasher_port import CredentialHasherPort
from credential_lifecycle.application.ports.identity_token_issuer_port import (
    IdentityTokenIssuerPort,
)
from credential_lifecycle.application.services.record_store import RecordStore
from credential_lifecycle.domain.credentials.credential import Credential

ID_BYTES = 16
TOKEN_BYTES = 32
DEFAULT_RESET_TOKEN_TTL_SECONDS = 3600


class CredentialRepository:
    """Own every credential field mutation on top of a configured record store."""

    def __init__(
        self,
        *,
        records: RecordStore,
        hasher: CredentialHasherPort,
        token_issuer: IdentityTokenIssuerPort,
        reset_token_ttl_seconds: int = DEFAULT_RESET_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._records = records
        self._hasher = hasher
        self._token_issuer = token_issuer
        self._reset_token_ttl_seconds = reset_token_ttl_seconds
        self._clock = clock

    def now(self) -> int:
        """Return current epoch seconds from the injected clock."""

        return int(self._clock())

    async def exists(self, email: str) -> bool:
        return await self._records.find_by("email", email) is not None

    async def find_by_email(self, email: str) -> Credential:
        """Return credential for email or raise `CredentialNotFoundError`."""

        fields = await self._records.find_by("email", email)
        if fields is None:
            raise CredentialNotFoundError(email=email)
        return Credential.from_fields(fields)

    async def create(
        self,
        *,
        email: str,
        password: str,
        permissions: Any = None,
        require_password_change: Any = None,
    ) -> Credential:
        """Persist a new unverified credential with a fresh verification token.

        Uniqueness of the email is the caller's concern.
        """

        derived = self._hasher.derive_hash(password)
        credential = Credential(
            id=self._hasher.random_token(ID_BYTES),
            email=email,
            password_salt=derived.salt,
            password_hash=derived.hash,
            verified=False,
            verification_token=self._hasher.random_token(TOKEN_BYTES),
            permissions=permissions,
            require_password_change=require_password_change,
        )
        await self._records.insert(credential.to_fields())
        return credential

    def password_matches(self, credential: Credential, password: str) -> bool:
        """Recompute the hash with the stored salt and compare."""

        derived = self._hasher.derive_hash(password, credential.password_salt)
        return self._hasher.matches(expected=credential.password_hash, candidate=derived.hash)

    def token_matches(self, expected: str | None, candidate: str) -> bool:
        return self._hasher.matches(expected=expected, candidate=candidate)

    async def set_password(
        self,
        credential: Credential,
        password: str,
        *,
        clear_reset_token: bool = False,
    ) -> Credential:
        """Replace salt and hash together, always with a brand-new salt."""

        derived = self._hasher.derive_hash(password)
        changes: dict[str, Any] = {
            "passwordSalt": derived.salt,
            "passwordHash": derived.hash,
        }
        if clear_reset_token:
            changes["resetToken"] = None
            changes["resetTokenExpiresAt"] = None

        await self._records.update_fields(credential.id, changes)
        updated = replace(credential, password_salt=derived.salt, password_hash=derived.hash)
        if clear_reset_token:
            updated = replace(updated, reset_token=None, reset_token_expires_at=None)
        return updated

    async def set_verified(self, credential: Credential) -> Credential:
        """Mark verified and remove the consumed verification token."""

        await self._records.update_fields(
            credential.id,
            {"verified": True, "verificationToken": None},
        )
        return replace(credential, verified=True, verification_token=None)

    async def set_reset_token(self, credential: Credential) -> Credential:
        """Mint a reset token, replacing any previous one."""

        token = self._hasher.random_token(TOKEN_BYTES)
        expires_at = self.now() + self._reset_token_ttl_seconds
        await self._records.update_fields(
            credential.id,
            {"resetToken": token, "resetTokenExpiresAt": expires_at},
        )
        return replace(credential, reset_token=token, reset_token_expires_at=expires_at)

    def auth_token(self, credential: Credential) -> str:
        """Issue an identity token with the credential email as subject."""

        return self._token_issuer.issue_token(subject=credential.email)
