"""Lead delivery: publishable key + lead -> one appended sheet row."""

import logging
from datetime import datetime, timezone

from leadsheets.database import Database
from leadsheets.errors import DeliveryFailed, GrantRevoked, NotConnected
from leadsheets.integrations.google_oauth import GoogleOAuthClient, renew_if_expired
from leadsheets.integrations.google_sheets import GoogleSheetsClient, SheetsApiError
from leadsheets.schemas.lead import LeadFields
from leadsheets.storage import credentials, leads, tenants

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SheetDeliveryCoordinator:
    """
    Resolves the tenant, records the lead, then appends it to the tenant's
    active spreadsheet.

    Each store step runs in its own short session; no connection is held
    while Google is being called. The active grant is re-read on every
    delivery because re-provisioning may rotate it at any time.
    """

    def __init__(
        self,
        database: Database,
        oauth_client: GoogleOAuthClient,
        sheets_client: GoogleSheetsClient,
        *,
        refresh_skew_seconds: int = 60,
        clock=_utc_now,
    ) -> None:
        self.database = database
        self.oauth_client = oauth_client
        self.sheets_client = sheets_client
        self.refresh_skew_seconds = refresh_skew_seconds
        self.clock = clock

    async def deliver_lead(self, publishable_key: str | None, fields: LeadFields) -> None:
        async with self.database.session() as db:
            tenant_id = await tenants.resolve_tenant(db, publishable_key)
            lead_id = await leads.record_lead(db, tenant_id, fields)

        try:
            await self._deliver(tenant_id, fields)
        except (DeliveryFailed, NotConnected) as exc:
            provider_detail = getattr(exc, "provider_detail", None)
            logger.warning(
                "Lead %s for tenant %s not delivered: %s (%s)",
                lead_id, tenant_id, exc.detail, provider_detail,
            )
            async with self.database.session() as db:
                await leads.mark_failed(db, lead_id, provider_detail or exc.detail)
            raise
        except Exception as exc:
            logger.exception("Lead %s for tenant %s not delivered", lead_id, tenant_id)
            async with self.database.session() as db:
                await leads.mark_failed(db, lead_id, f"{type(exc).__name__}: {exc}")
            raise

        async with self.database.session() as db:
            await leads.mark_delivered(db, lead_id)
        logger.info("Lead %s delivered for tenant %s", lead_id, tenant_id)

    async def _deliver(self, tenant_id: str, fields: LeadFields) -> None:
        async with self.database.session() as db:
            grant, binding = await credentials.load_active_grant(db, tenant_id)

        try:
            fresh = await renew_if_expired(
                grant,
                self.oauth_client,
                now=self.clock(),
                skew_seconds=self.refresh_skew_seconds,
            )
        except GrantRevoked:
            async with self.database.session() as db:
                await credentials.revoke_grant(db, binding.connection_id)
            logger.warning("Grant %s for tenant %s revoked", binding.connection_id, tenant_id)
            raise

        if fresh is not grant:
            async with self.database.session() as db:
                await credentials.update_grant_tokens(db, binding.connection_id, fresh)
            logger.info("Renewed access token persisted for tenant %s", tenant_id)

        row = fields.to_row(self.clock().isoformat())
        try:
            await self.sheets_client.append_row(fresh, binding.sheet_id, row)
        except SheetsApiError as exc:
            raise DeliveryFailed("Could not append lead to spreadsheet", provider_detail=str(exc)) from exc
