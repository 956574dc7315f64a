"""Application service implementing the credential lifecycle operations.

Every operation returns a `CredentialResult` whose `outcome` is either a
success or a named soft rejection. Malformed input raises `BadRequestError`
subclasses before storage is touched, a missing credential raises
`CredentialNotFoundError`, and storage, email, token and entropy failures
propagate unchanged as `CredentialServiceFailure` subclasses.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from credential_lifecycle.application.errors import (
    BadRequestError,
    CredentialValidationError,
    MissingFieldError,
)
from credential_lifecycle.application.services.credential_notifications import (
    CredentialNotifier,
)
from credential_lifecycle.application.services.credential_repository import (
    CredentialRepository,
)
from credential_lifecycle.domain.credentials.validation import (
    is_valid_email,
    is_valid_password,
    normalize_email,
)

logger = logging.getLogger(__name__)

Payload = Mapping[str, object]


class CredentialOutcome(StrEnum):
    """Supported credential operation outcomes."""

    CREATED = "created"
    AUTHENTICATED = "authenticated"
    VERIFIED = "verified"
    RESET_REQUESTED = "reset_requested"
    PASSWORD_UPDATED = "password_updated"
    USER_EXISTS = "user_exists"
    INCORRECT_PASSWORD = "incorrect_password"
    INVALID_TOKEN = "invalid_token"


REJECTED_OUTCOMES = frozenset(
    {
        CredentialOutcome.USER_EXISTS,
        CredentialOutcome.INCORRECT_PASSWORD,
        CredentialOutcome.INVALID_TOKEN,
    }
)


@dataclass(frozen=True)
class CredentialResult:
    """Credential operation result model."""

    outcome: CredentialOutcome
    message: str
    token: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome not in REJECTED_OUTCOMES


class CredentialService:
    """Orchestrate credential records, hashing and notifications."""

    def __init__(
        self,
        *,
        credentials: CredentialRepository,
        notifier: CredentialNotifier,
    ) -> None:
        self._credentials = credentials
        self._notifier = notifier

    async def register(self, payload: Payload) -> CredentialResult:
        """Create an unverified credential and send the verification email."""

        raw_email = _require_text(payload, "email")
        password = _require_text(payload, "password")
        email = _require_valid_email(raw_email)
        _require_policy_password(password)
        permissions = _optional_scalar(payload, "permissions")
        require_password_change = _optional_scalar(payload, "requirePasswordChange")

        if await self._credentials.exists(email):
            logger.info("credential_register_rejected reason=user_exists email=%s", email)
            return CredentialResult(
                outcome=CredentialOutcome.USER_EXISTS,
                message=f"User already exists: {email}",
            )

        credential = await self._credentials.create(
            email=email,
            password=password,
            permissions=permissions,
            require_password_change=require_password_change,
        )
        assert credential.verification_token is not None
        await self._notifier.send_verification(
            email=email,
            token=credential.verification_token,
        )
        logger.info("credential_registered credential_id=%s", credential.id)
        return CredentialResult(
            outcome=CredentialOutcome.CREATED,
            message=f"Created: {email}",
        )

    async def authenticate(self, payload: Payload) -> CredentialResult:
        """Check the password and return an identity bearer token."""

        email = normalize_email(email=_require_text(payload, "email"))
        password = _require_text(payload, "password")

        credential = await self._credentials.find_by_email(email)
        if not self._credentials.password_matches(credential, password):
            logger.info("credential_login_failed credential_id=%s", credential.id)
            return CredentialResult(
                outcome=CredentialOutcome.INCORRECT_PASSWORD,
                message="Incorrect password",
            )

        token = self._credentials.auth_token(credential)
        logger.info("credential_login_success credential_id=%s", credential.id)
        return CredentialResult(
            outcome=CredentialOutcome.AUTHENTICATED,
            message="Authenticated",
            token=token,
        )

    async def verify(self, payload: Payload) -> CredentialResult:
        """Consume the verification token and mark the email verified."""

        email = normalize_email(email=_require_text(payload, "email"))
        token = _require_text(payload, "token")

        credential = await self._credentials.find_by_email(email)
        if not self._credentials.token_matches(credential.verification_token, token):
            logger.info("credential_verify_rejected credential_id=%s", credential.id)
            return CredentialResult(
                outcome=CredentialOutcome.INVALID_TOKEN,
                message="Invalid token",
            )

        await self._credentials.set_verified(credential)
        logger.info("credential_verified credential_id=%s", credential.id)
        return CredentialResult(outcome=CredentialOutcome.VERIFIED, message="Verified")

    async def forgot_password(self, payload: Payload) -> CredentialResult:
        """Mint a reset token and email the reset link."""

        email = normalize_email(email=_require_text(payload, "email"))

        credential = await self._credentials.find_by_email(email)
        credential = await self._credentials.set_reset_token(credential)
        assert credential.reset_token is not None
        await self._notifier.send_password_reset(email=email, token=credential.reset_token)
        logger.info("credential_reset_requested credential_id=%s", credential.id)
        return CredentialResult(
            outcome=CredentialOutcome.RESET_REQUESTED,
            message="Password reset email sent",
        )

    async def reset_password(self, payload: Payload) -> CredentialResult:
        """Replace the password when the submitted reset token is valid."""

        email = normalize_email(email=_require_text(payload, "email"))
        token = _require_text(payload, "token")
        password = _require_text(payload, "password")
        _require_policy_password(password)

        credential = await self._credentials.find_by_email(email)
        token_valid = self._credentials.token_matches(credential.reset_token, token)
        if not token_valid or credential.reset_token_expired(now=self._credentials.now()):
            logger.info("credential_reset_rejected credential_id=%s", credential.id)
            return CredentialResult(
                outcome=CredentialOutcome.INVALID_TOKEN,
                message="Invalid token",
            )

        await self._credentials.set_password(credential, password, clear_reset_token=True)
        logger.info("credential_password_reset credential_id=%s", credential.id)
        return CredentialResult(
            outcome=CredentialOutcome.PASSWORD_UPDATED,
            message="Password updated",
        )

    async def change_password(self, payload: Payload) -> CredentialResult:
        """Replace the password after checking the current one."""

        email = normalize_email(email=_require_text(payload, "email"))
        current_password = _require_text(payload, "currentPassword", label="current password")
        new_password = _require_text(payload, "newPassword", label="new password")
        _require_policy_password(new_password)

        credential = await self._credentials.find_by_email(email)
        if not self._credentials.password_matches(credential, current_password):
            logger.info("credential_change_rejected credential_id=%s", credential.id)
            return CredentialResult(
                outcome=CredentialOutcome.INCORRECT_PASSWORD,
                message="Incorrect password",
            )

        await self._credentials.set_password(credential, new_password)
        logger.info("credential_password_changed credential_id=%s", credential.id)
        return CredentialResult(
            outcome=CredentialOutcome.PASSWORD_UPDATED,
            message="Password updated",
        )


def _require_text(payload: Payload, field: str, *, label: str | None = None) -> str:
    value = payload.get(field)
    if value is None:
        raise MissingFieldError(field=label or field)
    if not isinstance(value, str):
        raise BadRequestError(f"Bad Request: {label or field} must be a string")
    return value


def _optional_scalar(payload: Payload, field: str) -> str | int | float | bool | None:
    value = payload.get(field)
    if value is None or isinstance(value, str | bool | int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    raise BadRequestError(f"Bad Request: {field} must be a string, number or boolean")


def _require_valid_email(raw_email: str) -> str:
    email = normalize_email(email=raw_email)
    if not is_valid_email(email):
        raise CredentialValidationError(
            check="email_format",
            message="Validation Error: Invalid email address",
        )
    return email


def _require_policy_password(password: str) -> None:
    if not is_valid_password(password):
        raise CredentialValidationError(
            check="password_policy",
            message="Validation Error: Invalid password",
        )
