"""Shared fixtures: in-memory database and in-process Google fakes."""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import pytest
from sqlalchemy.pool import StaticPool

from leadsheets.database import Database
from leadsheets.errors import GrantRevoked, TokenExchangeFailed
from leadsheets.integrations.google_oauth import GOOGLE_AUTH_URI
from leadsheets.integrations.google_sheets import SheetsApiError
from leadsheets.models import Tenant
from leadsheets.schemas.grant import OAuthGrant

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeOAuthClient:
    """Stands in for GoogleOAuthClient."""

    def __init__(self):
        self.exchanged: list[str] = []
        self.refreshed: list[OAuthGrant] = []
        self.refresh_error: Exception | None = None

    def authorization_url(self, state: str) -> str:
        return f"{GOOGLE_AUTH_URI}?" + urlencode({"client_id": "cid", "state": state})

    async def exchange_code(self, code: str) -> OAuthGrant:
        self.exchanged.append(code)
        if code == "bad-code":
            raise TokenExchangeFailed("Google rejected the authorization code: invalid_grant")
        return OAuthGrant(
            access_token=f"at-{code}",
            refresh_token=f"rt-{code}",
            scope="https://www.googleapis.com/auth/spreadsheets",
            expiry=FIXED_NOW + timedelta(hours=1),
        )

    async def refresh(self, grant: OAuthGrant) -> OAuthGrant:
        self.refreshed.append(grant)
        if self.refresh_error is not None:
            raise self.refresh_error
        if not grant.refresh_token:
            raise GrantRevoked("Access token expired and no refresh token is stored")
        return grant.model_copy(
            update={"access_token": "at-renewed", "expiry": FIXED_NOW + timedelta(hours=1)}
        )


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; records every call."""

    def __init__(self):
        self.created: list[tuple[str, str]] = []
        self.headers: dict[str, list[str]] = {}
        self.rows: dict[str, list[list[str]]] = defaultdict(list)
        self.append_tokens: list[str] = []
        self.create_error: SheetsApiError | None = None
        self.header_error: SheetsApiError | None = None
        self.append_error: SheetsApiError | None = None

    async def create_spreadsheet(self, grant: OAuthGrant, title: str) -> str:
        if self.create_error is not None:
            raise self.create_error
        sheet_id = f"sheet-{len(self.created) + 1}"
        self.created.append((sheet_id, title))
        return sheet_id

    async def write_header(self, grant: OAuthGrant, sheet_id: str, header: list[str]) -> None:
        if self.header_error is not None:
            raise self.header_error
        self.headers[sheet_id] = list(header)

    async def append_row(self, grant: OAuthGrant, sheet_id: str, row: list[str]) -> None:
        if self.append_error is not None:
            raise self.append_error
        self.append_tokens.append(grant.access_token)
        self.rows[sheet_id].append(list(row))


@pytest.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def oauth_client():
    return FakeOAuthClient()


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture
def make_tenant(database):
    async def _make(tenant_id: str = "t1", publishable_key: str = "pk_test_1") -> str:
        async with database.session() as db:
            db.add(
                Tenant(
                    tenant_id=tenant_id,
                    buyer_email=f"{tenant_id}@example.com",
                    buyer_name=tenant_id,
                    publishable_key=publishable_key,
                    allowed_origins=[],
                )
            )
        return tenant_id

    return _make
