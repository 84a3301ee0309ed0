"""Organization management API endpoints.

These endpoints skip organization middleware (no X-Organization-ID needed)
since they are admin/provisioning endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from src.app.schemas.organization import OrganizationCreate, OrganizationResponse
from src.app.services.organization_provisioning import list_organizations, provision_organization

router = APIRouter(prefix="/api/v1/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(body: OrganizationCreate):
    """Provision a new organization with isolated schema and RLS policies."""
    result = await provision_organization(slug=body.slug, name=body.name)
    return OrganizationResponse(
        id=result["organization_id"],
        slug=result["slug"],
        name=result["name"],
        schema_name=result["schema_name"],
    )


@router.get("", response_model=list[OrganizationResponse])
async def get_organizations():
    """List all active organizations."""
    organizations = await list_organizations()
    return [OrganizationResponse(**o) for o in organizations]
