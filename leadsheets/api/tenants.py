"""Tenant admin endpoints - sign-up and origin allow-list."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadsheets.database import get_db
from leadsheets.schemas.tenant import CreateTenantRequest, TenantCreated, UpdateOriginsRequest
from leadsheets.storage.tenants import create_tenant, update_allowed_origins

router = APIRouter()


@router.post("/tenants/create", response_model=TenantCreated)
async def create_tenant_endpoint(
    body: CreateTenantRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a tenant and issue its publishable key."""
    tenant = await create_tenant(db, buyer_email=body.buyer_email, buyer_name=body.buyer_name)
    return TenantCreated(tenant_id=str(tenant.tenant_id), publishable_key=tenant.publishable_key)


@router.put("/tenant/origins", status_code=status.HTTP_204_NO_CONTENT)
async def update_origins(
    body: UpdateOriginsRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Replace the allowed origins for a tenant."""
    found = await update_allowed_origins(db, body.tenant_id, body.origins)
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
