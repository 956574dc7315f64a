"""Credential record model and lifecycle state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

CREDENTIALS_TABLE = "Credentials"
CREDENTIALS_PRIMARY_KEY = "id"
CREDENTIAL_FIELDS: tuple[str, ...] = (
    "id",
    "email",
    "passwordSalt",
    "passwordHash",
    "permissions",
    "verified",
    "verificationToken",
    "resetToken",
    "resetTokenExpiresAt",
    "requirePasswordChange",
)


class CredentialState(StrEnum):
    """Verification state of one credential."""

    UNVERIFIED = "unverified"
    VERIFIED = "verified"


@dataclass(frozen=True)
class Credential:
    """Authentication material and verification/reset state for one email."""

    id: str
    email: str
    password_salt: str
    password_hash: str
    verified: bool = False
    verification_token: str | None = None
    reset_token: str | None = None
    reset_token_expires_at: int | None = None
    permissions: Any = None
    require_password_change: Any = None

    @property
    def state(self) -> CredentialState:
        return CredentialState.VERIFIED if self.verified else CredentialState.UNVERIFIED

    @property
    def is_reset_pending(self) -> bool:
        return self.reset_token is not None

    def reset_token_expired(self, *, now: int) -> bool:
        """Return whether the pending reset token is past its expiry."""

        if self.reset_token_expires_at is None:
            return False
        return now >= self.reset_token_expires_at

    def to_fields(self) -> dict[str, Any]:
        """Return stored field mapping, omitting absent values."""

        fields: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
            "passwordSalt": self.password_salt,
            "passwordHash": self.password_hash,
            "verified": self.verified,
            "verificationToken": self.verification_token,
            "resetToken": self.reset_token,
            "resetTokenExpiresAt": self.reset_token_expires_at,
            "permissions": self.permissions,
            "requirePasswordChange": self.require_password_change,
        }
        return {key: value for key, value in fields.items() if value is not None}

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> Credential:
        """Build a credential from decoded stored fields."""

        expires_at = fields.get("resetTokenExpiresAt")
        return cls(
            id=str(fields["id"]),
            email=str(fields["email"]),
            password_salt=str(fields["passwordSalt"]),
            password_hash=str(fields["passwordHash"]),
            verified=bool(fields.get("verified", False)),
            verification_token=fields.get("verificationToken"),
            reset_token=fields.get("resetToken"),
            reset_token_expires_at=int(expires_at) if expires_at is not None else None,
            permissions=fields.get("permissions"),
            require_password_change=fields.get("requirePasswordChange"),
        )
