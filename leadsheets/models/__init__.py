"""Database models."""

from leadsheets.models.tenant import Tenant
from leadsheets.models.connection import ConnectionStatus, SheetConnection
from leadsheets.models.lead import DeliveryStatus, Lead

__all__ = ["Tenant", "SheetConnection", "ConnectionStatus", "Lead", "DeliveryStatus"]
