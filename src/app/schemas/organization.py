"""Pydantic schemas for organization API endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OrganizationCreate(BaseModel):
    """Request schema for creating a new organization."""

    slug: str = Field(
        ...,
        min_length=3,
        max_length=50,
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$",
        description="Unique organization identifier (lowercase alphanumeric + hyphens)",
        examples=["acme-audio", "pod-network"],
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Human-readable organization name",
        examples=["Acme Audio", "Pod Network"],
    )


class OrganizationResponse(BaseModel):
    """Response schema for organization data."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: str
    schema_name: str
    is_active: bool = True
    created_at: datetime | None = None
