"""Password hashing and JWT token tests."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from src.app.config import get_settings
from src.app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)

CLAIMS = {"sub": "user-1", "org_id": "org-1", "org_slug": "acme-audio"}


# ── Password Hashing ──────────────────────────────────────────────────────────


def test_hash_and_verify_password():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("wrong", hashed) is False


def test_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


# ── Tokens ───────────────────────────────────────────────────────────────────


def test_access_token_carries_organization_claims():
    token = create_access_token(CLAIMS)
    payload = verify_token(token)
    assert payload["sub"] == "user-1"
    assert payload["org_id"] == "org-1"
    assert payload["org_slug"] == "acme-audio"
    assert payload["type"] == "access"


def test_refresh_token_is_not_an_access_token():
    token = create_refresh_token(CLAIMS)
    assert verify_token(token, token_type="refresh")["sub"] == "user-1"
    with pytest.raises(HTTPException) as exc_info:
        verify_token(token)
    assert exc_info.value.status_code == 401


def test_expired_token_rejected():
    token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as exc_info:
        verify_token(token)
    assert exc_info.value.status_code == 401


def test_token_signed_with_other_key_rejected():
    token = jwt.encode({**CLAIMS, "type": "access"}, "not-the-key", algorithm="HS256")
    with pytest.raises(HTTPException):
        verify_token(token)


def test_token_without_subject_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"org_id": "org-1", "type": "access"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(HTTPException):
        verify_token(token)
