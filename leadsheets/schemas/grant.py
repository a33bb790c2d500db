"""OAuth grant and spreadsheet binding value objects."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class OAuthGrant(BaseModel):
    """Access/refresh token pair authorizing Sheets calls for one tenant."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    expiry: datetime | None = None
    provider_user_id: str | None = None


class SheetBinding(BaseModel):
    """Spreadsheet a tenant's leads are appended to."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    sheet_id: str
    connection_id: int | None = None
    status: str = "active"


class ProvisioningResult(BaseModel):
    """Outcome of a completed authorization."""

    tenant_id: str
    sheet_id: str
