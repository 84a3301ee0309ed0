"""JWT authentication, password hashing, and API key validation.

Provides the core security primitives used by auth endpoints and
middleware to authenticate and authorize requests.

Uses bcrypt directly (not passlib) for Python 3.13 compatibility.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import HTTPException, status
from jose import JWTError, jwt

from src.app.config import get_settings

logger = logging.getLogger(__name__)

# ── Password Hashing ──────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its bcrypt hash."""
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# ── JWT Token Creation ────────────────────────────────────────────────────────


def _encode(data: dict, expire: datetime, token_type: str) -> str:
    settings = get_settings()
    to_encode = data.copy()
    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with organization-scoped claims.

    The data dict should contain at minimum:
    - sub: user_id (str)
    - org_id: organization UUID (str)
    - org_slug: organization slug (str)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    return _encode(data, expire, "access")


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token with longer expiry."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, expire, "refresh")


# ── JWT Token Verification ────────────────────────────────────────────────────


def verify_token(token: str, token_type: str = "access") -> dict:
    """Decode and validate a JWT token.

    Args:
        token: The JWT string.
        token_type: Expected token type ("access" or "refresh").

    Returns:
        The decoded payload dict.

    Raises:
        HTTPException(401): If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise credentials_exception
    if payload.get("type") != token_type:
        raise credentials_exception
    if not payload.get("sub"):
        raise credentials_exception
    return payload


# ── API Key Validation ────────────────────────────────────────────────────────


async def validate_api_key(api_key: str) -> dict | None:
    """Look up an API key in the database and return associated user/organization info.

    Iterates through all active organization schemas, sets RLS context for
    each, and checks if the provided API key matches any stored hash.

    Returns a dict with org_id, org_slug, user_id, user_email if valid,
    or None if the key is not found or inactive.
    """
    from sqlalchemy import text

    from src.app.core.database import get_engine

    engine = get_engine()

    async with engine.connect() as conn:
        result = await conn.execute(
            text("SELECT schema_name, slug, id::text AS org_id FROM shared.organizations WHERE is_active = true")
        )
        organizations = result.fetchall()

        for org_row in organizations:
            schema = org_row.schema_name
            try:
                await conn.execute(text(f"SET app.current_org_id = '{org_row.org_id}'"))
                await conn.commit()

                key_result = await conn.execute(
                    text(f"""
                        SELECT ak.key_hash, ak.user_id::text, u.email
                        FROM "{schema}".api_keys ak
                        JOIN "{schema}".users u ON ak.user_id = u.id
                        WHERE ak.is_active = true AND u.is_active = true
                    """)
                )
                for key_row in key_result.fetchall():
                    if verify_password(api_key, key_row.key_hash):
                        await conn.execute(
                            text(f"""
                                UPDATE "{schema}".api_keys
                                SET last_used_at = NOW()
                                WHERE key_hash = :key_hash
                            """),
                            {"key_hash": key_row.key_hash},
                        )
                        await conn.commit()
                        return {
                            "org_id": org_row.org_id,
                            "org_slug": org_row.slug,
                            "user_id": key_row.user_id,
                            "user_email": key_row.email,
                        }
            except Exception as e:
                # Schema may predate the api_keys table
                logger.warning("API key lookup failed for schema %s: %s", schema, e)
                await conn.rollback()
                continue

    return None
