"""
OAuth provisioning: authorization code -> spreadsheet -> stored grant.

An attempt moves Started -> CodeExchanged -> SheetCreated -> HeaderWritten
-> Persisted. The store is written only in the last step, so a failed
attempt never leaves a grant behind. A spreadsheet created before a later
failure cannot be rolled back; it is logged as orphaned and the attempt is
not retried, since a retry would orphan another one.
"""

import logging

from leadsheets.database import Database
from leadsheets.errors import MalformedState, ProvisioningFailed
from leadsheets.integrations.google_oauth import GoogleOAuthClient
from leadsheets.integrations.google_sheets import GoogleSheetsClient, SheetsApiError
from leadsheets.schemas.grant import ProvisioningResult, SheetBinding
from leadsheets.schemas.lead import SHEET_HEADER
from leadsheets.storage import credentials, tenants
from leadsheets.utils.state import STATE_EXPIRE_SECONDS, decode_state, encode_state

logger = logging.getLogger(__name__)


class OAuthProvisioner:
    def __init__(
        self,
        database: Database,
        oauth_client: GoogleOAuthClient,
        sheets_client: GoogleSheetsClient,
        *,
        state_secret: str,
        state_expire_seconds: int = STATE_EXPIRE_SECONDS,
        sheet_title_prefix: str = "Lum-X Leads",
    ) -> None:
        self.database = database
        self.oauth_client = oauth_client
        self.sheets_client = sheets_client
        self.state_secret = state_secret
        self.state_expire_seconds = state_expire_seconds
        self.sheet_title_prefix = sheet_title_prefix

    def sheet_title(self, tenant_id: str) -> str:
        return f"{self.sheet_title_prefix} ({tenant_id})"

    def begin_authorization(self, tenant_id: str) -> str:
        """Google consent URL carrying the tenant in signed state."""
        state = encode_state(tenant_id, self.state_secret, expires_in=self.state_expire_seconds)
        return self.oauth_client.authorization_url(state)

    async def complete_authorization(self, code: str, state: str | None) -> ProvisioningResult:
        tenant_id = decode_state(state, self.state_secret)

        # State is attacker-visible; the tenant must still exist
        async with self.database.session() as db:
            tenant = await tenants.get_tenant(db, tenant_id)
        if tenant is None:
            raise MalformedState("State names an unknown tenant")
        logger.info("Provisioning started for tenant %s", tenant_id)

        grant = await self.oauth_client.exchange_code(code)
        logger.info("Authorization code exchanged for tenant %s", tenant_id)

        try:
            sheet_id = await self.sheets_client.create_spreadsheet(grant, self.sheet_title(tenant_id))
        except SheetsApiError as exc:
            raise ProvisioningFailed(f"Could not create spreadsheet: {exc}") from exc
        logger.info("Spreadsheet %s created for tenant %s", sheet_id, tenant_id)

        try:
            await self.sheets_client.write_header(grant, sheet_id, SHEET_HEADER)
        except SheetsApiError as exc:
            logger.warning("Orphaned spreadsheet %s for tenant %s: header write failed", sheet_id, tenant_id)
            raise ProvisioningFailed(f"Could not write header row: {exc}") from exc

        try:
            async with self.database.session() as db:
                binding = await credentials.save_grant(
                    db, tenant_id, grant, SheetBinding(tenant_id=tenant_id, sheet_id=sheet_id)
                )
        except Exception:
            logger.warning("Orphaned spreadsheet %s for tenant %s: grant not persisted", sheet_id, tenant_id)
            raise

        logger.info("Grant persisted for tenant %s (connection %s)", tenant_id, binding.connection_id)
        return ProvisioningResult(tenant_id=tenant_id, sheet_id=binding.sheet_id)
