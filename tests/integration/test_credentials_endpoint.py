from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

import jwt
import pytest
import sqlalchemy as sa
from alembic.config import Config
from fastapi.testclient import TestClient

from alembic import command
from apps.credentials_api.main import build_credential_service, create_app
from credential_lifecycle.application.errors import NotificationFailureError
from credential_lifecycle.application.ports.email_sender_port import EmailSenderPort
from credential_lifecycle.config.settings import Settings
from credential_lifecycle.infrastructure.email.http_client import LoggingEmailSender, render_email

SECRET = "endpoint-signing-secret-for-tests-000001"
_TOKEN_PATTERN = re.compile(r"token=([0-9a-f]+)")


class RenderingEmailSender:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send_template(
        self,
        *,
        template: str,
        recipient: str,
        subject: str,
        params: Mapping[str, str],
    ) -> None:
        self.sent.append(
            {
                "template": template,
                "recipient": recipient,
                "subject": subject,
                "html": render_email(template, params),
            }
        )


class FailingEmailSender:
    async def send_template(
        self,
        *,
        template: str,
        recipient: str,
        subject: str,
        params: Mapping[str, str],
    ) -> None:
        raise NotificationFailureError(f"send {template} failed with status 503")


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _settings(async_url: str) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=async_url,
        TABLE_PREFIX="test_",
        APP_NAME="Acme",
        VERIFICATION_LINK="https://app.example.org/verify",
        RESET_PASSWORD_LINK="https://app.example.org/reset",
        EMAIL_SOURCE="no-reply@example.org",
        IDENTITY_TOKEN_SECRET=SECRET,
        PASSWORD_HASH_ITERATIONS=10,
    )


def _build_client(async_url: str, sender: EmailSenderPort) -> TestClient:
    service = build_credential_service(_settings(async_url), email_sender=sender)
    return TestClient(create_app(credential_service=service))


def _call(client: TestClient, operation: str, payload: dict[str, object]) -> tuple[int, dict]:
    response = client.post("/credentials", json={"operation": operation, "payload": payload})
    return response.status_code, response.json()


def _last_token(sender: RenderingEmailSender) -> str:
    match = _TOKEN_PATTERN.search(sender.sent[-1]["html"])
    assert match is not None
    return match.group(1)


def test_full_lifecycle_over_http(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "endpoint_lifecycle.db")
    sender = RenderingEmailSender()

    with _build_client(async_url, sender) as client:
        status, body = _call(
            client, "register", {"email": " Alice@Example.com ", "password": "Abcdef1!"}
        )
        assert status == 201
        assert body["success"] is True
        assert body["data"]["message"] == "Created: alice@example.com"
        assert sender.sent[-1]["template"] == "verification"
        assert sender.sent[-1]["recipient"] == "alice@example.com"
        assert sender.sent[-1]["subject"] == "[Acme] Please verify this email address"

        status, body = _call(
            client, "register", {"email": "alice@example.com", "password": "Abcdef1!"}
        )
        assert (status, body["success"]) == (200, False)
        assert body["message"] == "User already exists: alice@example.com"

        status, body = _call(client, "verify", {"email": "alice@example.com", "token": "nope"})
        assert (status, body["message"]) == (200, "Invalid token")

        verification_token = _last_token(sender)
        status, body = _call(
            client, "verify", {"email": "alice@example.com", "token": verification_token}
        )
        assert (status, body["data"]["outcome"]) == (200, "verified")

        status, body = _call(
            client, "authenticate", {"email": "alice@example.com", "password": "wrong-pass"}
        )
        assert (status, body["success"], body["message"]) == (200, False, "Incorrect password")

        status, body = _call(
            client, "authenticate", {"email": "alice@example.com", "password": "Abcdef1!"}
        )
        assert status == 200
        claims = jwt.decode(
            body["data"]["token"],
            SECRET,
            algorithms=["HS256"],
            audience="login.credentials",
        )

        status, body = _call(client, "forgotPassword", {"email": "alice@example.com"})
        assert status == 200
        assert sender.sent[-1]["template"] == "reset_password"
        reset_token = _last_token(sender)

        status, body = _call(
            client,
            "resetPassword",
            {"email": "alice@example.com", "token": reset_token, "password": "Newpass9$"},
        )
        assert (status, body["data"]["message"]) == (200, "Password updated")

        status, body = _call(
            client,
            "resetPassword",
            {"email": "alice@example.com", "token": reset_token, "password": "Other9$x"},
        )
        assert (status, body["message"]) == (200, "Invalid token")

        status, body = _call(
            client, "authenticate", {"email": "alice@example.com", "password": "Newpass9$"}
        )
        assert body["success"] is True

    assert claims["sub"] == "alice@example.com"
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        tables = connection.execute(sa.text("SELECT table_name FROM kv_items")).scalars().all()
    assert tables == ["test_Credentials"]


def test_bad_requests_map_to_400(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "endpoint_bad_request.db")

    with _build_client(async_url, LoggingEmailSender()) as client:
        missing_operation = client.post("/credentials", json={"payload": {}})
        unknown_operation = client.post(
            "/credentials", json={"operation": "deleteAccount", "payload": {}}
        )
        missing_field = client.post(
            "/credentials", json={"operation": "register", "payload": {"email": "a@b.com"}}
        )
        weak_password = client.post(
            "/credentials",
            json={"operation": "register", "payload": {"email": "a@b.com", "password": "short"}},
        )

    assert missing_operation.status_code == 400
    assert missing_operation.json()["detail"] == "Bad Request: Missing operation"
    assert unknown_operation.status_code == 400
    assert unknown_operation.json()["detail"] == "Bad Request: Unknown operation: deleteAccount"
    assert missing_field.status_code == 400
    assert missing_field.json()["detail"] == "Bad Request: Missing password"
    assert weak_password.status_code == 400
    assert weak_password.json()["detail"].startswith("Validation Error")


def test_unknown_email_maps_to_404(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "endpoint_not_found.db")

    with _build_client(async_url, LoggingEmailSender()) as client:
        status, body = _call(
            client, "authenticate", {"email": "ghost@example.com", "password": "Abcdef1!"}
        )

    assert status == 404
    assert body["detail"] == "credentials not found"


def test_notification_failure_maps_to_500_without_details(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "endpoint_email_failure.db")

    with _build_client(async_url, FailingEmailSender()) as client:
        status, body = _call(client, "register", {"email": "a@b.com", "password": "Abcdef1!"})

    assert status == 500
    assert body["detail"] == "internal server error"
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        count = connection.execute(sa.text("SELECT COUNT(*) FROM kv_items")).scalar_one()
    assert count == 1


def test_health_endpoint(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "endpoint_health.db")

    with _build_client(async_url, LoggingEmailSender()) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("operation", ["forgot_password", "forgotPassword"])
def test_snake_case_aliases_reach_same_operation(tmp_path: Path, operation: str) -> None:
    _, async_url = _upgrade_head(tmp_path, f"endpoint_alias_{operation}.db")
    sender = RenderingEmailSender()

    with _build_client(async_url, sender) as client:
        _call(client, "register", {"email": "a@b.com", "password": "Abcdef1!"})
        status, body = _call(client, operation, {"email": "a@b.com"})

    assert status == 200
    assert body["data"]["outcome"] == "reset_requested"
    assert sender.sent[-1]["template"] == "reset_password"


def test_structured_permissions_map_to_400_without_write(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "endpoint_permissions.db")
    sender = RenderingEmailSender()

    with _build_client(async_url, sender) as client:
        status, body = _call(
            client,
            "register",
            {"email": "a@b.com", "password": "Abcdef1!", "permissions": ["admin"]},
        )

    assert status == 400
    assert body["detail"] == "Bad Request: permissions must be a string, number or boolean"
    assert sender.sent == []
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        count = connection.execute(sa.text("SELECT COUNT(*) FROM kv_items")).scalar_one()
    assert count == 0


@pytest.mark.parametrize(
    "body",
    [
        {"operation": "register", "payload": ["a@b.com"]},
        {"operation": "register", "payload": {}, "extra": True},
        {"operation": 7, "payload": {}},
    ],
)
def test_malformed_request_bodies_map_to_400(tmp_path: Path, body: dict[str, object]) -> None:
    _, async_url = _upgrade_head(tmp_path, "endpoint_malformed_body.db")

    with _build_client(async_url, LoggingEmailSender()) as client:
        response = client.post("/credentials", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Bad Request: Invalid request body"}
