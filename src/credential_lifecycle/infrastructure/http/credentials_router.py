"""FastAPI router translating credential operations into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from credential_lifecycle.application.dto.credential_models import (
    CredentialOperationData,
    CredentialOperationRequest,
    CredentialOperationResponse,
)
from credential_lifecycle.application.errors import (
    BadRequestError,
    CredentialNotFoundError,
    CredentialServiceFailure,
)
from credential_lifecycle.application.services.credential_dispatcher import (
    CredentialOperationDispatcher,
)
from credential_lifecycle.application.services.credential_service import CredentialOutcome

logger = logging.getLogger(__name__)


def build_credentials_router(*, dispatcher: CredentialOperationDispatcher) -> APIRouter:
    """Build router exposing the credential operation endpoint."""

    router = APIRouter(tags=["credentials"])

    @router.post("/credentials", response_model=CredentialOperationResponse)
    async def invoke_operation(request: CredentialOperationRequest) -> JSONResponse:
        try:
            result = await dispatcher.dispatch(request.operation, request.payload)
        except BadRequestError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CredentialNotFoundError as exc:
            raise HTTPException(status_code=404, detail="credentials not found") from exc
        except CredentialServiceFailure as exc:
            logger.exception(
                "credential_operation_failed operation=%s error=%s",
                request.operation,
                type(exc).__name__,
            )
            raise HTTPException(status_code=500, detail="internal server error") from exc

        logger.info(
            "credential_operation_result operation=%s outcome=%s",
            request.operation,
            result.outcome.value,
        )
        if not result.succeeded:
            response = CredentialOperationResponse(success=False, message=result.message)
            return JSONResponse(status_code=200, content=response.model_dump())

        response = CredentialOperationResponse(
            success=True,
            data=CredentialOperationData(
                outcome=result.outcome.value,
                message=result.message,
                token=result.token,
            ),
        )
        status_code = 201 if result.outcome is CredentialOutcome.CREATED else 200
        return JSONResponse(status_code=status_code, content=response.model_dump())

    @router.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return router
