"""JWT identity token issuer adapter."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt

from credential_lifecycle.application.errors import TokenIssuanceFailureError
from credential_lifecycle.application.ports.identity_token_issuer_port import (
    IdentityTokenIssuerPort,
)

_ALGORITHM = "HS256"


class JwtIdentityTokenIssuer(IdentityTokenIssuerPort):
    """Issue signed, time-bounded bearer tokens for a developer identity."""

    def __init__(
        self,
        *,
        secret: str,
        issuer: str,
        audience: str,
        token_ttl: timedelta = timedelta(hours=1),
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret:
            raise ValueError("secret cannot be blank")
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._token_ttl = token_ttl
        self._now = now or (lambda: datetime.now(tz=UTC))

    def issue_token(self, *, subject: str) -> str:
        issued_at = self._now()
        claims = {
            "sub": subject,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._token_ttl).timestamp()),
        }
        try:
            return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)
        except jwt.PyJWTError as error:
            raise TokenIssuanceFailureError("identity token issuance failed") from error
