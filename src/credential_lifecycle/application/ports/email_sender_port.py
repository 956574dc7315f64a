"""Port for transactional template email delivery."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class EmailSenderPort(Protocol):
    """Transactional email contract."""

    async def send_template(
        self,
        *,
        template: str,
        recipient: str,
        subject: str,
        params: Mapping[str, str],
    ) -> None:
        """Render template with params and deliver it to the recipient."""
