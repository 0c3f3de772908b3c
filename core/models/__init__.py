"""Core domain models."""

from core.models.user import Role, Identity, User, UserCreate, UserUpdate, check_role_tenant
from core.models.tenant import Tenant, TenantCreate, TenantUpdate, TenantSummary
from core.models.client import Client, ClientCreate, ClientBulkCreate, ClientUpdate
from core.models.line_item import LineItem, LineItemCreate, LineItemUpdate
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceStatus, InvoiceStatusUpdate,
)

__all__ = [
    # User
    "Role", "Identity", "User", "UserCreate", "UserUpdate", "check_role_tenant",
    # Tenant
    "Tenant", "TenantCreate", "TenantUpdate", "TenantSummary",
    # Client
    "Client", "ClientCreate", "ClientBulkCreate", "ClientUpdate",
    # LineItem
    "LineItem", "LineItemCreate", "LineItemUpdate",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceStatus", "InvoiceStatusUpdate",
]
