"""Sheet delivery coordinator tests."""

from datetime import timedelta

import httplib2
import pytest
from sqlalchemy import select

from leadsheets.errors import DeliveryFailed, GrantRevoked, NotConnected, UnauthorizedTenant
from leadsheets.integrations.google_sheets import GoogleSheetsClient, SheetsApiError
from leadsheets.models import DeliveryStatus, Lead
from leadsheets.schemas.grant import OAuthGrant, SheetBinding
from leadsheets.schemas.lead import LeadFields
from leadsheets.services.delivery import SheetDeliveryCoordinator
from leadsheets.storage import credentials

from conftest import FIXED_NOW


@pytest.fixture
def coordinator(database, oauth_client, sheets_client):
    return SheetDeliveryCoordinator(database, oauth_client, sheets_client, clock=lambda: FIXED_NOW)


async def _connect(database, tenant_id: str, sheet_id: str, **grant_fields) -> None:
    fields = {
        "access_token": "at-1",
        "refresh_token": "rt-1",
        "expiry": FIXED_NOW + timedelta(hours=1),
    }
    fields.update(grant_fields)
    async with database.session() as db:
        await credentials.save_grant(
            db, tenant_id, OAuthGrant(**fields), SheetBinding(tenant_id=tenant_id, sheet_id=sheet_id)
        )


async def _leads(database) -> list[Lead]:
    async with database.session() as db:
        return list((await db.execute(select(Lead).order_by(Lead.lead_id))).scalars().all())


async def test_lead_appended_to_bound_sheet(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1")

    await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert sheets_client.rows["S1"] == [["Ann", "a@x.com", "", "", "", FIXED_NOW.isoformat()]]
    [lead] = await _leads(database)
    assert lead.delivery_status == DeliveryStatus.DELIVERED.value
    assert lead.delivered_at is not None


async def test_all_fields_land_in_header_order(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1")
    fields = LeadFields.model_validate(
        {
            "name": "Bo",
            "email": "b@x.com",
            "phone": "555-0100",
            "annualSalary": "50-75k",
            "source": "landing",
            "message": "call me",
        }
    )

    await coordinator.deliver_lead("pk_test_1", fields)

    assert sheets_client.rows["S1"] == [
        ["Bo", "b@x.com", "555-0100", "50-75k", "landing", FIXED_NOW.isoformat()]
    ]
    [lead] = await _leads(database)
    assert lead.message == "call me"


async def test_unknown_key_never_reads_credentials(database, make_tenant, coordinator, sheets_client, monkeypatch):
    await make_tenant("t1", "pk_test_1")

    async def _must_not_run(*args, **kwargs):
        raise AssertionError("credential store touched for an unknown key")

    monkeypatch.setattr(credentials, "load_active_grant", _must_not_run)

    with pytest.raises(UnauthorizedTenant):
        await coordinator.deliver_lead("pk_unknown", LeadFields(name="Ann", email="a@x.com"))
    assert sheets_client.rows == {}
    assert await _leads(database) == []


async def test_not_connected_tenant(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")

    with pytest.raises(NotConnected):
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert sheets_client.rows == {}
    # The lead itself is kept
    [lead] = await _leads(database)
    assert lead.delivery_status == DeliveryStatus.FAILED.value


async def test_expired_token_is_renewed_and_persisted(database, make_tenant, coordinator, oauth_client, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1", expiry=FIXED_NOW - timedelta(minutes=1))

    await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert len(oauth_client.refreshed) == 1
    assert sheets_client.append_tokens == ["at-renewed"]
    async with database.session() as db:
        grant, _ = await credentials.load_active_grant(db, "t1")
    assert grant.access_token == "at-renewed"
    assert grant.expiry == FIXED_NOW + timedelta(hours=1)

    # The stored renewal is reused, not renewed again
    await coordinator.deliver_lead("pk_test_1", LeadFields(name="Bo", email="b@x.com"))
    assert len(oauth_client.refreshed) == 1


async def test_unrenewable_grant_is_revoked(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1", refresh_token=None, expiry=FIXED_NOW - timedelta(minutes=1))

    with pytest.raises(GrantRevoked):
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert sheets_client.rows == {}
    with pytest.raises(NotConnected):
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))


async def test_provider_failure_surfaces_with_detail(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1")
    sheets_client.append_error = SheetsApiError("[values.append] 404 Requested entity was not found.", status=404)

    with pytest.raises(DeliveryFailed) as exc_info:
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert "404" in exc_info.value.provider_detail
    [lead] = await _leads(database)
    assert lead.delivery_status == DeliveryStatus.FAILED.value
    assert "404" in lead.delivery_error


async def test_reprovisioned_grant_is_picked_up(database, make_tenant, coordinator, sheets_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1")
    await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    await _connect(database, "t1", "S2", access_token="at-2")
    await coordinator.deliver_lead("pk_test_1", LeadFields(name="Bo", email="b@x.com"))

    assert [row[0] for row in sheets_client.rows["S1"]] == ["Ann"]
    assert [row[0] for row in sheets_client.rows["S2"]] == ["Bo"]
    assert sheets_client.append_tokens == ["at-1", "at-2"]


class UnreachableSheetsClient(GoogleSheetsClient):
    """Real client whose transport cannot resolve Google's host."""

    def _service(self, name, version, grant):
        raise httplib2.ServerNotFoundError("Unable to find the server at sheets.googleapis.com")


async def test_transport_failure_surfaces_as_delivery_failure(database, make_tenant, oauth_client):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1")
    coordinator = SheetDeliveryCoordinator(
        database, oauth_client, UnreachableSheetsClient(), clock=lambda: FIXED_NOW
    )

    with pytest.raises(DeliveryFailed) as exc_info:
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    assert "transport error" in exc_info.value.provider_detail
    [lead] = await _leads(database)
    assert lead.delivery_status == DeliveryStatus.FAILED.value
    assert "sheets.googleapis.com" in lead.delivery_error


async def test_unexpected_error_still_marks_lead_failed(database, make_tenant, coordinator, monkeypatch):
    await make_tenant("t1", "pk_test_1")
    await _connect(database, "t1", "S1", expiry=FIXED_NOW - timedelta(minutes=1))

    async def _store_down(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(credentials, "update_grant_tokens", _store_down)

    with pytest.raises(RuntimeError):
        await coordinator.deliver_lead("pk_test_1", LeadFields(name="Ann", email="a@x.com"))

    [lead] = await _leads(database)
    assert lead.delivery_status == DeliveryStatus.FAILED.value
    assert lead.delivery_error == "RuntimeError: connection reset"
