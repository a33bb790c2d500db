"""Tenant registry - publishable key to tenant resolution."""

import secrets

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadsheets.errors import UnauthorizedTenant
from leadsheets.models import Tenant

PUBLISHABLE_KEY_PREFIX = "pk_live_"


def generate_publishable_key() -> str:
    return PUBLISHABLE_KEY_PREFIX + secrets.token_hex(16)


async def resolve_tenant(db: AsyncSession, publishable_key: str | None) -> str:
    """Map a publishable key to its tenant id by exact match on the unique index."""
    if not publishable_key:
        raise UnauthorizedTenant("Unknown publishable key")
    result = await db.execute(
        select(Tenant.tenant_id).where(Tenant.publishable_key == publishable_key).limit(1)
    )
    tenant_id = result.scalar_one_or_none()
    if tenant_id is None:
        raise UnauthorizedTenant("Unknown publishable key")
    return str(tenant_id)


async def get_tenant(db: AsyncSession, tenant_id: str) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.tenant_id == tenant_id))
    return result.scalar_one_or_none()


async def create_tenant(
    db: AsyncSession,
    buyer_email: str | None = None,
    buyer_name: str | None = None,
    publishable_key: str | None = None,
) -> Tenant:
    """Create a tenant with a freshly issued publishable key."""
    tenant = Tenant(
        buyer_email=buyer_email,
        buyer_name=buyer_name,
        publishable_key=publishable_key or generate_publishable_key(),
        allowed_origins=[],
    )
    db.add(tenant)
    await db.flush()
    return tenant


async def update_allowed_origins(db: AsyncSession, tenant_id: str, origins: list[str]) -> bool:
    """Replace the tenant's origin allow-list. Returns False when the tenant is unknown."""
    result = await db.execute(
        update(Tenant)
        .where(Tenant.tenant_id == tenant_id)
        .values(allowed_origins=list(origins))
        .returning(Tenant.tenant_id)
    )
    return result.scalar_one_or_none() is not None
