"""Shared test fixtures for InvoiceFlow test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, Mock
from uuid import uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger
from core.models import Identity, Role
from utils.tenant_context import clear_current_identity, identity_context


# =============================================================================
# TEST IDENTITY CONSTANTS
# =============================================================================

TENANT_ID = 7
OTHER_TENANT_ID = 8

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

SYSTEM_ADMIN = Identity(user_id=1, email="admin@example.com", role=Role.SYSTEM_ADMIN, tenant_id=None)

# Accountant of tenant 7 - use for tenant scoping tests
ACCOUNTANT = Identity(user_id=2, email="accountant@example.com", role=Role.ACCOUNTANT, tenant_id=TENANT_ID)

# Misconfigured non-admin without a tenant
ORPHAN = Identity(user_id=3, email="orphan@example.com", role=Role.COMPANY_ADMIN, tenant_id=None)


# =============================================================================
# IDENTITY FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_identity_context():
    """Ensure clean identity context before and after each test."""
    clear_current_identity()
    yield
    clear_current_identity()


@pytest.fixture
def admin_identity() -> Identity:
    return SYSTEM_ADMIN


@pytest.fixture
def accountant_identity() -> Identity:
    return ACCOUNTANT


@pytest.fixture
def orphan_identity() -> Identity:
    return ORPHAN


@pytest.fixture
def as_admin():
    """Act as the system admin."""
    with identity_context(SYSTEM_ADMIN):
        yield SYSTEM_ADMIN


@pytest.fixture
def as_accountant():
    """Act as the tenant 7 accountant."""
    with identity_context(ACCOUNTANT):
        yield ACCOUNTANT


@pytest.fixture
def as_orphan():
    """Act as a non-admin user with no tenant."""
    with identity_context(ORPHAN):
        yield ORPHAN


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def db():
    """PostgresClient double. db.transaction() yields the `tx` fixture."""
    postgres = MagicMock(spec=PostgresClient)
    postgres.transaction.return_value.__exit__.return_value = False
    return postgres


@pytest.fixture
def tx(db):
    """Transaction double handed out by db.transaction()."""
    transaction = Mock(spec=Transaction)
    db.transaction.return_value.__enter__.return_value = transaction
    return transaction


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


# =============================================================================
# ROW FACTORIES
# =============================================================================


@pytest.fixture
def client_row():
    """Build a clients table row."""

    def build(**overrides):
        row = {
            "id": str(uuid4()),
            "tenant_id": TENANT_ID,
            "name": "Acme Corp",
            "email": "billing@acme.com",
            "phone": None,
            "address": None,
            "company": "Acme",
            "created_at": NOW,
            "updated_at": NOW,
        }
        row.update(overrides)
        return row

    return build


@pytest.fixture
def line_item_row():
    """Build a line_items table row."""

    def build(invoice_id, position=1, quantity=1, unit_price="0", **overrides):
        row = {
            "id": str(uuid4()),
            "invoice_id": str(invoice_id),
            "position": position,
            "description": f"Item {position}",
            "quantity": quantity,
            "unit_price": Decimal(unit_price),
            "total": Decimal(quantity) * Decimal(unit_price),
            "created_at": NOW,
            "updated_at": NOW,
        }
        row.update(overrides)
        return row

    return build


@pytest.fixture
def invoice_row():
    """Build an invoices table row (amounts default to zero)."""

    def build(**overrides):
        row = {
            "id": str(uuid4()),
            "tenant_id": TENANT_ID,
            "client_id": str(uuid4()),
            "invoice_number": "INV-001",
            "status": "unpaid",
            "date": date(2026, 1, 15),
            "due_date": None,
            "subtotal": Decimal("0"),
            "tax_rate": Decimal("0"),
            "tax_amount": Decimal("0"),
            "discount": Decimal("0"),
            "total": Decimal("0"),
            "notes": None,
            "created_at": NOW,
            "updated_at": NOW,
        }
        row.update(overrides)
        return row

    return build
