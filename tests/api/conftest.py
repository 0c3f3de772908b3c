"""API test fixtures - TestClient over the real routers with mocked services."""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.admin import create_admin_router
from api.clients import create_clients_router
from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from auth.exceptions import InvalidCredentialError
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from core.models import Identity, Role
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService
from core.services.line_item_service import LineItemService
from core.services.tenant_service import TenantService
from core.services.user_service import UserService

IDENTITIES = {
    "admin-token": Identity(user_id=1, email="admin@example.com", role=Role.SYSTEM_ADMIN, tenant_id=None),
    "accountant-token": Identity(user_id=2, email="accountant@example.com", role=Role.ACCOUNTANT, tenant_id=7),
    "company-admin-token": Identity(user_id=4, email="boss@example.com", role=Role.COMPANY_ADMIN, tenant_id=7),
    "orphan-token": Identity(user_id=3, email="orphan@example.com", role=Role.COMPANY_ADMIN, tenant_id=None),
}


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def client_service():
    return Mock(spec=ClientService)


@pytest.fixture
def invoice_service():
    return Mock(spec=InvoiceService)


@pytest.fixture
def line_item_service():
    return Mock(spec=LineItemService)


@pytest.fixture
def tenant_service():
    return Mock(spec=TenantService)


@pytest.fixture
def user_service():
    return Mock(spec=UserService)


@pytest.fixture
def auth_service():
    def authenticate(token):
        if token not in IDENTITIES:
            raise InvalidCredentialError("Invalid or expired token")
        return IDENTITIES[token]

    mock = Mock(spec=AuthService)
    mock.authenticate.side_effect = authenticate
    return mock


# =============================================================================
# APP FIXTURES
# =============================================================================


@pytest.fixture
def api_client(auth_service, client_service, invoice_service, line_item_service, tenant_service, user_service):
    """TestClient over the admin, client and invoice routers."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, auth_service=auth_service, cookie_name="token")
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_admin_router(tenant_service, user_service), prefix="/admin")
    app.include_router(create_clients_router(client_service), prefix="/api")
    app.include_router(
        create_invoices_router(invoice_service, line_item_service, client_service),
        prefix="/api",
    )
    return TestClient(app, raise_server_exceptions=False)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _bearer("admin-token")


@pytest.fixture
def accountant_headers():
    return _bearer("accountant-token")


@pytest.fixture
def company_admin_headers():
    return _bearer("company-admin-token")


@pytest.fixture
def orphan_headers():
    return _bearer("orphan-token")
