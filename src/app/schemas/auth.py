"""Pydantic schemas for authentication and user management endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from src.app.models.organization import UserRole


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class TokenResponse(BaseModel):
    """Response schema with access and refresh tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    """Request schema to refresh an access token."""

    refresh_token: str = Field(..., description="Valid refresh token")


class ApiKeyCreate(BaseModel):
    """Request schema for creating a new API key."""

    name: str = Field(..., min_length=1, max_length=200, description="Human-readable name for the API key")


class ApiKeyResponse(BaseModel):
    """Response schema for a newly created API key.

    The `key` field is only returned at creation time; it cannot be
    retrieved later.
    """

    id: str
    name: str
    key: str  # Only returned on creation
    created_at: datetime | None = None


class UserResponse(BaseModel):
    """Response schema for current user info."""

    id: str
    email: str
    name: str | None = None
    role: str
    org_id: str
    org_slug: str


class UserCreate(BaseModel):
    """Request schema for adding a user to the organization."""

    email: EmailStr
    name: str | None = Field(None, max_length=200)
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.SALES


class UserUpdate(BaseModel):
    """Partial update of a user (all fields optional)."""

    name: str | None = Field(None, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    """User as listed by the user management endpoints."""

    id: str
    email: str
    name: str | None = None
    role: str
    is_active: bool = True
    created_at: datetime | None = None
