"""Credential store - OAuth grants and their spreadsheet bindings."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from leadsheets.errors import NotConnected
from leadsheets.models import ConnectionStatus, SheetConnection
from leadsheets.schemas.grant import OAuthGrant, SheetBinding

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _insert_for(db: AsyncSession):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


def _to_grant(row: SheetConnection) -> OAuthGrant:
    return OAuthGrant(
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        scope=row.token_scope,
        expiry=_as_utc(row.token_expiry),
        provider_user_id=row.provider_user_id,
    )


def _to_binding(row: SheetConnection) -> SheetBinding:
    return SheetBinding(
        tenant_id=str(row.tenant_id),
        sheet_id=row.sheet_id,
        connection_id=row.id,
        status=row.status,
    )


async def _get_connection(db: AsyncSession, tenant_id: str, sheet_id: str) -> SheetConnection | None:
    result = await db.execute(
        select(SheetConnection).where(
            SheetConnection.tenant_id == tenant_id,
            SheetConnection.sheet_id == sheet_id,
        )
    )
    return result.scalar_one_or_none()


async def save_grant(
    db: AsyncSession, tenant_id: str, grant: OAuthGrant, binding: SheetBinding
) -> SheetBinding:
    """
    Store a new grant + binding and make it the tenant's active one.

    A retried callback for the same (tenant, sheet) returns the existing row.
    A concurrent writer that already activated another binding wins; this
    call then returns that binding instead of creating a second active row.
    """
    existing = await _get_connection(db, tenant_id, binding.sheet_id)
    if existing is not None:
        logger.info("Grant for tenant %s sheet %s already stored", tenant_id, binding.sheet_id)
        return _to_binding(existing)

    await db.execute(
        update(SheetConnection)
        .where(
            SheetConnection.tenant_id == tenant_id,
            SheetConnection.status == ConnectionStatus.ACTIVE.value,
        )
        .values(status=ConnectionStatus.SUPERSEDED.value)
    )
    insert = _insert_for(db)
    stmt = (
        insert(SheetConnection)
        .values(
            tenant_id=tenant_id,
            sheet_id=binding.sheet_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_scope=grant.scope,
            token_expiry=grant.expiry,
            provider_user_id=grant.provider_user_id,
            status=ConnectionStatus.ACTIVE.value,
        )
        .on_conflict_do_nothing()
        .returning(SheetConnection.id)
    )
    result = await db.execute(stmt)
    connection_id = result.scalar_one_or_none()
    if connection_id is None:
        # Lost the race; undo our supersede and report the winner
        await db.rollback()
        logger.warning("Concurrent grant save for tenant %s; keeping the stored one", tenant_id)
        _, winner = await load_active_grant(db, tenant_id)
        return winner

    return SheetBinding(
        tenant_id=tenant_id,
        sheet_id=binding.sheet_id,
        connection_id=connection_id,
        status=ConnectionStatus.ACTIVE.value,
    )


async def load_active_grant(db: AsyncSession, tenant_id: str) -> tuple[OAuthGrant, SheetBinding]:
    """Return the tenant's active grant, newest first."""
    result = await db.execute(
        select(SheetConnection)
        .where(
            SheetConnection.tenant_id == tenant_id,
            SheetConnection.status == ConnectionStatus.ACTIVE.value,
        )
        .order_by(SheetConnection.id.desc())
        .limit(1)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotConnected("Google Sheets not connected")
    return _to_grant(row), _to_binding(row)


async def update_grant_tokens(db: AsyncSession, connection_id: int, grant: OAuthGrant) -> None:
    """Persist a renewed access token (and a rotated refresh token, if any)."""
    values = {"access_token": grant.access_token, "token_expiry": grant.expiry}
    if grant.refresh_token:
        values["refresh_token"] = grant.refresh_token
    await db.execute(
        update(SheetConnection).where(SheetConnection.id == connection_id).values(**values)
    )


async def revoke_grant(db: AsyncSession, connection_id: int) -> None:
    await db.execute(
        update(SheetConnection)
        .where(SheetConnection.id == connection_id)
        .values(status=ConnectionStatus.REVOKED.value)
    )
