from __future__ import annotations

import base64

import pytest

from clubstatus.infrastructure.http.auth_guard import (
    InvalidCredentialsError,
    MissingCredentialsError,
    PasswordGuard,
    extract_basic_password,
)


def _basic(user_pass: str) -> str:
    return "Basic " + base64.b64encode(user_pass.encode("utf-8")).decode("ascii")


def test_extracts_password_ignoring_username() -> None:
    assert extract_basic_password(_basic("anyone:s3cret")) == "s3cret"
    assert extract_basic_password(_basic(":pw:with:colons")) == "pw:with:colons"


def test_missing_header_raises_missing_credentials() -> None:
    with pytest.raises(MissingCredentialsError):
        extract_basic_password(None)
    with pytest.raises(MissingCredentialsError):
        extract_basic_password("   ")


@pytest.mark.parametrize(
    "header",
    ["Bearer token", "Basic", "Basic !!!notbase64", _basic("no-separator")],
)
def test_malformed_header_raises_invalid_credentials(header: str) -> None:
    with pytest.raises(InvalidCredentialsError):
        extract_basic_password(header)


def test_guard_without_password_allows_everyone() -> None:
    guard = PasswordGuard(password=None)

    assert guard.enabled is False
    guard.require_authenticated(authorization_header=None)


def test_guard_accepts_correct_password() -> None:
    guard = PasswordGuard(password="hunter2")

    assert guard.enabled is True
    guard.require_authenticated(authorization_header=_basic("x:hunter2"))


def test_guard_rejects_wrong_or_missing_password() -> None:
    guard = PasswordGuard(password="hunter2")

    with pytest.raises(InvalidCredentialsError):
        guard.require_authenticated(authorization_header=_basic("x:wrong"))
    with pytest.raises(MissingCredentialsError):
        guard.require_authenticated(authorization_header=None)
