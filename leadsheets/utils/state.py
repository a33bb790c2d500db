"""Signed OAuth state - a short-lived HS256 JWT carrying the tenant id."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from leadsheets.errors import MalformedState

ALGORITHM = "HS256"
STATE_EXPIRE_SECONDS = 600


def encode_state(
    tenant_id: str,
    secret: str,
    *,
    expires_in: int = STATE_EXPIRE_SECONDS,
    now: datetime | None = None,
) -> str:
    """Sign ``{"tenantId": ...}`` with an expiry so a leaked consent URL goes stale."""
    now = now or datetime.now(timezone.utc)
    to_encode = {"tenantId": tenant_id, "exp": now + timedelta(seconds=expires_in)}
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def decode_state(state: str | None, secret: str) -> str:
    """Return the tenant id carried in ``state``; raise MalformedState otherwise."""
    if not state:
        raise MalformedState("Missing tenantId in state")
    try:
        payload = jwt.decode(state, secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise MalformedState(f"State rejected: {exc}") from exc
    tenant_id = payload.get("tenantId")
    if not tenant_id or not isinstance(tenant_id, str):
        raise MalformedState("Missing tenantId in state")
    return tenant_id
