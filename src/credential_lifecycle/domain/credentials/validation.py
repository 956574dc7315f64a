"""Shared normalization and policy checks for credential inputs."""

from __future__ import annotations

import re

PASSWORD_SYMBOLS = "$@!%*?&"
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20

_EMAIL_PATTERN = re.compile(
    r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}",
    re.IGNORECASE | re.ASCII,
)
_PASSWORD_PATTERN = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[$@!%*?&])"
    rf"[A-Za-z\d$@!%*?&]{{{PASSWORD_MIN_LENGTH},{PASSWORD_MAX_LENGTH}}}",
    re.ASCII,
)


def normalize_email(*, email: str) -> str:
    """Normalize one email address for storage and lookup."""

    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Return whether the email has a `local@domain.tld` shape."""

    return _EMAIL_PATTERN.fullmatch(email) is not None


def is_valid_password(password: str) -> bool:
    """Return whether the password satisfies the password policy.

    The policy requires 8-20 characters drawn only from letters, digits and
    `$@!%*?&`, with at least one lowercase letter, one uppercase letter, one
    digit and one symbol.
    """

    return _PASSWORD_PATTERN.fullmatch(password) is not None

