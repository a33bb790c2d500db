"""Tenant admin schemas."""

from pydantic import BaseModel, ConfigDict, Field


class CreateTenantRequest(BaseModel):
    """POST /api/tenants/create request."""

    buyer_email: str | None = None
    buyer_name: str | None = None


class TenantCreated(BaseModel):
    """POST /api/tenants/create response."""

    tenant_id: str
    publishable_key: str


class UpdateOriginsRequest(BaseModel):
    """PUT /api/tenant/origins request."""

    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(alias="tenantId", min_length=1)
    origins: list[str]
