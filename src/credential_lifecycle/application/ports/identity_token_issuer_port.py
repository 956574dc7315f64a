"""Port for external identity token issuance."""

from __future__ import annotations

from typing import Protocol


class IdentityTokenIssuerPort(Protocol):
    """Identity token issuance contract."""

    def issue_token(self, *, subject: str) -> str:
        """Return a signed, time-bounded bearer token for the subject."""
