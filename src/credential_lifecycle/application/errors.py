"""Error taxonomy shared by credential use-cases and their adapters."""

from __future__ import annotations


class BadRequestError(ValueError):
    """Raised when a request payload cannot be processed as submitted."""


class MissingFieldError(BadRequestError):
    """Raised when one required payload field is absent."""

    def __init__(self, *, field: str) -> None:
        super().__init__(f"Bad Request: Missing {field}")
        self.field = field


class UnknownOperationError(BadRequestError):
    """Raised when a request names an operation that does not exist."""

    def __init__(self, *, operation: str) -> None:
        super().__init__(f"Bad Request: Unknown operation: {operation}")
        self.operation = operation


class CredentialValidationError(BadRequestError):
    """Raised when an email or password fails format validation."""

    def __init__(self, *, check: str, message: str) -> None:
        super().__init__(message)
        self.check = check


class CredentialNotFoundError(LookupError):
    """Raised when no credential exists for the requested email."""

    def __init__(self, *, email: str) -> None:
        super().__init__(f"credentials not found: {email}")
        self.email = email


class CredentialServiceFailure(RuntimeError):
    """Base class for failures that prevent an operation from completing."""


class StorageUnavailableError(CredentialServiceFailure):
    """Raised when the record store cannot complete a read or write."""


class NotificationFailureError(CredentialServiceFailure):
    """Raised when a transactional email could not be delivered."""


class TokenIssuanceFailureError(CredentialServiceFailure):
    """Raised when the identity token provider fails."""


class EntropyFailureError(CredentialServiceFailure):
    """Raised when secure random bytes cannot be obtained."""
