"""Service dependencies built from the handles stored on app.state."""

from typing import Annotated

from fastapi import Depends, Request

from leadsheets.config import Settings
from leadsheets.services.delivery import SheetDeliveryCoordinator
from leadsheets.services.provisioning import OAuthProvisioner


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_delivery_coordinator(request: Request) -> SheetDeliveryCoordinator:
    state = request.app.state
    return SheetDeliveryCoordinator(
        state.database,
        state.oauth_client,
        state.sheets_client,
        refresh_skew_seconds=state.settings.token_refresh_skew_seconds,
    )


def get_provisioner(request: Request) -> OAuthProvisioner:
    state = request.app.state
    return OAuthProvisioner(
        state.database,
        state.oauth_client,
        state.sheets_client,
        state_secret=state.settings.state_signing_secret,
        state_expire_seconds=state.settings.state_expire_seconds,
        sheet_title_prefix=state.settings.sheet_title_prefix,
    )


SettingsDep = Annotated[Settings, Depends(get_settings)]
DeliveryDep = Annotated[SheetDeliveryCoordinator, Depends(get_delivery_coordinator)]
ProvisionerDep = Annotated[OAuthProvisioner, Depends(get_provisioner)]
