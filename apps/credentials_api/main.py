"""credentials-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from credential_lifecycle.application.ports.email_sender_port import EmailSenderPort
from credential_lifecycle.application.ports.key_value_store_port import KeyValueStorePort
from credential_lifecycle.application.services.credential_dispatcher import (
    CredentialOperationDispatcher,
)
from credential_lifecycle.application.services.credential_notifications import (
    CredentialNotifier,
)
from credential_lifecycle.application.services.credential_repository import (
    CredentialRepository,
)
from credential_lifecycle.application.services.credential_service import CredentialService
from credential_lifecycle.application.services.record_store import RecordStore
from credential_lifecycle.config.settings import Settings, load_settings
from credential_lifecycle.domain.credentials.credential import (
    CREDENTIAL_FIELDS,
    CREDENTIALS_PRIMARY_KEY,
    CREDENTIALS_TABLE,
)
from credential_lifecycle.infrastructure.db.key_value_store import (
    KeyValueTableSpec,
    SqlAlchemyKeyValueStore,
)
from credential_lifecycle.infrastructure.db.session import create_session_factory
from credential_lifecycle.infrastructure.email.http_client import (
    HttpEmailSender,
    LoggingEmailSender,
)
from credential_lifecycle.infrastructure.http.credentials_router import (
    build_credentials_router,
)
from credential_lifecycle.infrastructure.logging import configure_logging
from credential_lifecycle.infrastructure.security.identity_token_issuer import (
    JwtIdentityTokenIssuer,
)
from credential_lifecycle.infrastructure.security.password_hasher import (
    Pbkdf2CredentialHasher,
)

CREDENTIALS_API_HOST = "0.0.0.0"
CREDENTIALS_API_PORT = 8000
logger = logging.getLogger(__name__)


def credentials_table_name(settings: Settings) -> str:
    """Return the prefixed credentials table name."""

    return f"{settings.table_prefix}{CREDENTIALS_TABLE}"


def build_key_value_store(settings: Settings) -> KeyValueStorePort:
    """Build SQLAlchemy-backed key-value store with the credentials table registered."""

    session_factory = create_session_factory(settings.database_url)
    return SqlAlchemyKeyValueStore(
        session_factory,
        tables={
            credentials_table_name(settings): KeyValueTableSpec(
                primary_key=CREDENTIALS_PRIMARY_KEY,
                indexed_attributes=("email",),
            )
        },
    )


def build_email_sender(settings: Settings) -> EmailSenderPort:
    """Build email sender for the configured delivery mode."""

    if settings.email_delivery_mode == "log":
        return LoggingEmailSender()
    if settings.email_api_url is None:
        raise ValueError("EMAIL_API_URL is required when EMAIL_DELIVERY_MODE=http")
    return HttpEmailSender(
        api_url=str(settings.email_api_url),
        api_token=settings.email_api_token,
        source=settings.email_source,
        timeout_seconds=settings.email_timeout_seconds,
    )


def build_credential_service(
    settings: Settings,
    *,
    store: KeyValueStorePort | None = None,
    email_sender: EmailSenderPort | None = None,
) -> CredentialService:
    """Build credential service with configured storage, email and token adapters."""

    records = RecordStore(
        store=store or build_key_value_store(settings),
        table=credentials_table_name(settings),
        fields=CREDENTIAL_FIELDS,
        primary_key=CREDENTIALS_PRIMARY_KEY,
    )
    credentials = CredentialRepository(
        records=records,
        hasher=Pbkdf2CredentialHasher(iterations=settings.password_hash_iterations),
        token_issuer=JwtIdentityTokenIssuer(
            secret=settings.identity_token_secret,
            issuer=settings.identity_token_issuer,
            audience=settings.developer_provider_name,
            token_ttl=timedelta(seconds=settings.identity_token_ttl_seconds),
        ),
        reset_token_ttl_seconds=settings.reset_token_ttl_seconds,
    )
    notifier = CredentialNotifier(
        sender=email_sender or build_email_sender(settings),
        app_name=settings.app_name,
        verification_link=str(settings.verification_link),
        reset_password_link=str(settings.reset_password_link),
    )
    return CredentialService(credentials=credentials, notifier=notifier)


def create_app(
    *,
    settings: Settings | None = None,
    credential_service: CredentialService | None = None,
) -> FastAPI:
    """Create FastAPI app exposing credential lifecycle operations."""

    if credential_service is None:
        if settings is None:
            settings = load_settings()
        configure_logging(level=settings.log_level)
        credential_service = build_credential_service(settings)

    dispatcher = CredentialOperationDispatcher(service=credential_service)
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, _invalid_request_body)
    app.include_router(build_credentials_router(dispatcher=dispatcher))
    logger.info("credentials_api_ready operations=%s", ",".join(dispatcher.operations))
    return app


async def _invalid_request_body(request: Request, exc: Exception) -> JSONResponse:
    """Answer malformed request bodies with the same 400 shape as other bad requests."""

    logger.info("credential_request_rejected reason=invalid_body path=%s", request.url.path)
    return JSONResponse(status_code=400, content={"detail": "Bad Request: Invalid request body"})


def run_asgi_server(
    *,
    host: str = CREDENTIALS_API_HOST,
    port: int = CREDENTIALS_API_PORT,
) -> None:
    """Run credentials-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.credentials_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run credentials-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
