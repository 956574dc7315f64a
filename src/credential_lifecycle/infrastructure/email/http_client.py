"""Concrete HTTP email API adapter for transactional template emails."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from credential_lifecycle.application.errors import NotificationFailureError
from credential_lifecycle.application.ports.email_sender_port import EmailSenderPort
from credential_lifecycle.infrastructure.email.templates import (
    EmailTemplateNotFoundError,
    render_template,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailHttpResponse:
    """Normalized HTTP response data returned by transport implementations."""

    status_code: int
    body_bytes: bytes


class EmailHttpTransportPort(Protocol):
    """Transport protocol used by the email HTTP adapter."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> EmailHttpResponse:
        """Execute one HTTP request and return normalized response data."""


class UrllibEmailHttpTransport:
    """urllib-based async transport implementation for email API calls."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> EmailHttpResponse:
        """Execute HTTP request in a worker thread and normalize HTTP errors."""

        return await asyncio.to_thread(
            self._request_sync,
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeout_seconds=timeout_seconds,
        )

    def _request_sync(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> EmailHttpResponse:
        request = Request(url=url, data=body, headers=headers, method=method)
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                status_code = int(response.getcode())
                payload = response.read()
                return EmailHttpResponse(status_code=status_code, body_bytes=payload)
        except HTTPError as error:
            payload = error.read()
            return EmailHttpResponse(status_code=int(error.code), body_bytes=payload)
        except URLError as error:
            raise NotificationFailureError(f"transport connection failure: {error}") from error


class HttpEmailSender(EmailSenderPort):
    """Render HTML templates and submit them to an HTTP email API."""

    def __init__(
        self,
        *,
        api_url: str,
        api_token: str | None,
        source: str,
        transport: EmailHttpTransportPort | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._api_url = api_url
        self._api_token = api_token
        self._source = source
        self._transport = transport or UrllibEmailHttpTransport()
        self._timeout_seconds = timeout_seconds

    async def send_template(
        self,
        *,
        template: str,
        recipient: str,
        subject: str,
        params: Mapping[str, str],
    ) -> None:
        payload = {
            "from": self._source,
            "to": [recipient],
            "subject": subject,
            "html": render_email(template, params),
        }
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        try:
            response = await self._transport.request(
                method="POST",
                url=self._api_url,
                headers=headers,
                body=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                timeout_seconds=self._timeout_seconds,
            )
        except NotificationFailureError:
            raise
        except Exception as error:  # noqa: BLE001
            raise NotificationFailureError(f"send {template} transport failure") from error

        if response.status_code < 200 or response.status_code >= 300:
            raise NotificationFailureError(
                f"send {template} failed with status {response.status_code}"
            )
        logger.info("email_sent template=%s", template)


class LoggingEmailSender(EmailSenderPort):
    """Render templates and log the delivery instead of sending it.

    Only delivery metadata is logged; the rendered body carries live tokens.
    """

    async def send_template(
        self,
        *,
        template: str,
        recipient: str,
        subject: str,
        params: Mapping[str, str],
    ) -> None:
        body = render_email(template, params)
        logger.info(
            "email_logged template=%s recipient=%s subject=%s html_chars=%d",
            template,
            recipient,
            subject,
            len(body),
        )


def render_email(template: str, params: Mapping[str, str]) -> str:
    """Render one email template, surfacing a missing template as a notification failure."""

    try:
        return render_template(template, params)
    except EmailTemplateNotFoundError as error:
        raise NotificationFailureError(str(error)) from error
