"""Lead audit records."""

from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from leadsheets.models import DeliveryStatus, Lead
from leadsheets.schemas.lead import LeadFields


async def record_lead(db: AsyncSession, tenant_id: str, fields: LeadFields) -> int:
    """Insert the submission as pending delivery."""
    lead = Lead(
        tenant_id=tenant_id,
        name=fields.name,
        email=fields.email,
        phone=fields.phone,
        annual_salary=fields.annual_salary,
        source=fields.source,
        message=fields.message,
        delivery_status=DeliveryStatus.PENDING.value,
    )
    db.add(lead)
    await db.flush()
    return lead.lead_id


async def mark_delivered(db: AsyncSession, lead_id: int) -> None:
    await db.execute(
        update(Lead)
        .where(Lead.lead_id == lead_id)
        .values(
            delivery_status=DeliveryStatus.DELIVERED.value,
            delivery_error=None,
            delivered_at=datetime.now(timezone.utc),
        )
    )


async def mark_failed(db: AsyncSession, lead_id: int, error: str) -> None:
    await db.execute(
        update(Lead)
        .where(Lead.lead_id == lead_id)
        .values(delivery_status=DeliveryStatus.FAILED.value, delivery_error=error)
    )
