"""Pydantic models for the credential operation endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class CredentialOperationRequest(StrictModel):
    """One operation invocation: operation name plus its payload object."""

    operation: str | None = None
    payload: dict[str, Any] | None = None


class CredentialOperationData(StrictModel):
    """Success data returned by credential operations."""

    outcome: str
    message: str
    token: str | None = None


class CredentialOperationResponse(StrictModel):
    """HTTP response model for credential operations."""

    success: bool
    data: CredentialOperationData | None = None
    message: str | None = None
