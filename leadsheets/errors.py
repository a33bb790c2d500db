"""Core error taxonomy.

Every error crosses the core boundary unchanged; the HTTP layer maps
``status_code`` and ``kind`` onto the response.
"""

from typing import Any


class LeadSheetsError(Exception):
    """Base error for lead capture and delivery."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.detail}


class UnauthorizedTenant(LeadSheetsError):
    """Publishable key is missing or matches no tenant."""

    status_code = 401


class NotConnected(LeadSheetsError):
    """Tenant has no active Google grant; re-provisioning resolves it."""

    status_code = 400


class MalformedState(LeadSheetsError):
    """OAuth state is missing, forged, or names an unknown tenant."""

    status_code = 400


class TokenExchangeFailed(LeadSheetsError):
    """Google rejected the authorization code."""

    status_code = 502


class ProvisioningFailed(LeadSheetsError):
    """Spreadsheet creation or header write failed while provisioning."""

    status_code = 502


class DeliveryFailed(LeadSheetsError):
    """Upstream Sheets/OAuth failure while appending a lead."""

    status_code = 502

    def __init__(self, detail: str, provider_detail: str | None = None) -> None:
        super().__init__(detail)
        self.provider_detail = provider_detail

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.provider_detail:
            body["provider_detail"] = self.provider_detail
        return body


class GrantRevoked(DeliveryFailed):
    """The grant can never be renewed again (no refresh token, or Google revoked it)."""
