"""Verification and password-reset email composition."""

from __future__ import annotations

from urllib.parse import urlencode

from credential_lifecycle.application.ports.email_sender_port import EmailSenderPort

VERIFICATION_TEMPLATE = "verification"
RESET_PASSWORD_TEMPLATE = "reset_password"


class CredentialNotifier:
    """Send lifecycle emails carrying single-use links."""

    def __init__(
        self,
        *,
        sender: EmailSenderPort,
        app_name: str,
        verification_link: str,
        reset_password_link: str,
    ) -> None:
        self._sender = sender
        self._app_name = app_name
        self._verification_link = verification_link
        self._reset_password_link = reset_password_link

    async def send_verification(self, *, email: str, token: str) -> None:
        await self._sender.send_template(
            template=VERIFICATION_TEMPLATE,
            recipient=email,
            subject=f"[{self._app_name}] Please verify this email address",
            params={
                "email": email,
                "token": token,
                "app_name": self._app_name,
                "link": _link(self._verification_link, email=email, token=token),
            },
        )

    async def send_password_reset(self, *, email: str, token: str) -> None:
        await self._sender.send_template(
            template=RESET_PASSWORD_TEMPLATE,
            recipient=email,
            subject=f"[{self._app_name}] Reset your password",
            params={
                "email": email,
                "token": token,
                "app_name": self._app_name,
                "link": _link(self._reset_password_link, email=email, token=token),
            },
        )


def _link(base: str, *, email: str, token: str) -> str:
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode({'email': email, 'token': token})}"
