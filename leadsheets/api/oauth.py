"""Google OAuth start and callback endpoints."""

from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import RedirectResponse

from leadsheets.api.deps import ProvisionerDep, SettingsDep

router = APIRouter()


def _with_query_param(url: str, key: str, value: str) -> str:
    parsed = urlparse(url)
    query = [(k, v) for k, v in parse_qsl(parsed.query) if k != key]
    query.append((key, value))
    return urlunparse(parsed._replace(query=urlencode(query)))


@router.get("/start")
async def oauth_start(provisioner: ProvisionerDep, tenantId: str | None = None):
    """Redirect the operator to Google's consent screen."""
    if not tenantId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing tenantId")
    return RedirectResponse(provisioner.begin_authorization(tenantId))


@router.get("/google/callback")
async def oauth_callback(
    provisioner: ProvisionerDep,
    settings: SettingsDep,
    code: str | None = None,
    state: str | None = None,
):
    """Finish provisioning, then send the operator back to the dashboard."""
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing code")
    result = await provisioner.complete_authorization(code, state)
    return RedirectResponse(_with_query_param(settings.dashboard_url, "tenant", result.tenant_id))
