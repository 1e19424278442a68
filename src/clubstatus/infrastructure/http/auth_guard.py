"""HTTP Basic password check for the authenticated parts of the API."""

from __future__ import annotations

import base64
import binascii
import secrets


class MissingCredentialsError(PermissionError):
    """Raised when a password is required but no Basic credentials were sent."""


class InvalidCredentialsError(PermissionError):
    """Raised when the Basic header is malformed or carries the wrong password."""


def extract_basic_password(authorization_header: str | None) -> str:
    """Return the password part of an `Authorization: Basic <b64(user:pass)>` header."""

    if authorization_header is None or not authorization_header.strip():
        raise MissingCredentialsError("missing basic auth credentials")

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "basic":
        raise InvalidCredentialsError("invalid basic auth header")

    try:
        decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidCredentialsError("invalid basic auth header") from exc

    _, separator, password = decoded.partition(":")
    if not separator:
        raise InvalidCredentialsError("invalid basic auth header")
    return password


class PasswordGuard:
    """Shared-password guard; without a configured password every caller passes."""

    def __init__(self, *, password: str | None) -> None:
        self._password = password

    @property
    def enabled(self) -> bool:
        return self._password is not None

    def require_authenticated(self, *, authorization_header: str | None) -> None:
        if self._password is None:
            return
        provided = extract_basic_password(authorization_header)
        if not secrets.compare_digest(provided.encode("utf-8"), self._password.encode("utf-8")):
            raise InvalidCredentialsError(
                "Auth check failed. Please perform HTTP basic auth with the correct password."
            )
