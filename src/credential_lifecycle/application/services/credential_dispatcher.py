"""Map operation names onto credential service methods."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping

from credential_lifecycle.application.errors import MissingFieldError, UnknownOperationError
from credential_lifecycle.application.services.credential_service import (
    CredentialResult,
    CredentialService,
    Payload,
)

OperationHandler = Callable[[Payload], Awaitable[CredentialResult]]


class CredentialOperationDispatcher:
    """Resolve one named operation and run it with the request payload."""

    def __init__(self, *, service: CredentialService) -> None:
        handlers: dict[str, OperationHandler] = {
            "register": service.register,
            "authenticate": service.authenticate,
            "verify": service.verify,
            "forgotPassword": service.forgot_password,
            "resetPassword": service.reset_password,
            "changePassword": service.change_password,
        }
        handlers.update(
            {
                "forgot_password": service.forgot_password,
                "reset_password": service.reset_password,
                "change_password": service.change_password,
            }
        )
        self._handlers = handlers

    @property
    def operations(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    async def dispatch(
        self,
        operation: str | None,
        payload: Mapping[str, object] | None,
    ) -> CredentialResult:
        """Run the named operation; payload defaults to an empty mapping."""

        if not operation:
            raise MissingFieldError(field="operation")
        handler = self._handlers.get(operation)
        if handler is None:
            raise UnknownOperationError(operation=operation)
        return await handler(payload or {})
