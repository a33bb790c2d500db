"""Lead ingestion endpoint."""

from fastapi import APIRouter, Response, status

from leadsheets.api.deps import DeliveryDep
from leadsheets.auth.middleware import PublishableKeyDep
from leadsheets.schemas.lead import LeadFields

router = APIRouter()


@router.post("/leads", status_code=status.HTTP_204_NO_CONTENT)
async def create_lead(
    body: LeadFields,
    publishable_key: PublishableKeyDep,
    coordinator: DeliveryDep,
):
    """
    Record a lead and append it to the tenant's spreadsheet.
    401 for an unknown key, 400 when Google Sheets is not connected,
    502 when Google rejects the append.
    """
    await coordinator.deliver_lead(publishable_key, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
