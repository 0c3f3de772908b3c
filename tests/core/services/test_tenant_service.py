"""Tests for TenantService."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from auth.security_logger import SecurityEvent, SecurityLogger
from core.audit import AuditAction
from core.exceptions import NotFoundError
from core.models import TenantCreate, TenantUpdate
from core.services.tenant_service import TenantService

CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def tenant_service(db, audit, security_logger):
    return TenantService(db, audit, security_logger)


def _summary(tenant_id=7, name="Acme Ltd", **counts):
    return {
        "id": tenant_id,
        "name": name,
        "created_at": CREATED,
        "user_count": counts.get("users", 0),
        "client_count": counts.get("clients", 0),
        "invoice_count": counts.get("invoices", 0),
    }


class TestTenantCreate:
    def test_creates_and_logs(self, db, audit, security_logger, as_admin, tenant_service):
        db.execute_returning.return_value = [{"id": 9, "name": "Globex", "created_at": CREATED}]

        tenant = tenant_service.create(TenantCreate(name="Globex"))

        assert tenant.id == 9
        assert db.execute_returning.call_args.args[1][0] == "Globex"
        assert audit.log_change.call_args.kwargs["action"] == AuditAction.CREATE
        event = security_logger.log.call_args.args[0]
        assert event == SecurityEvent.TENANT_CREATED
        assert security_logger.log.call_args.kwargs["user_id"] == as_admin.user_id


class TestTenantGet:
    def test_includes_counts(self, db, tenant_service):
        db.execute_single.return_value = _summary(users=2, clients=5, invoices=11)

        tenant = tenant_service.get(7)

        assert (tenant.user_count, tenant.client_count, tenant.invoice_count) == (2, 5, 11)

    def test_missing_is_not_found(self, db, tenant_service):
        db.execute_single.return_value = None

        with pytest.raises(NotFoundError, match="Tenant not found"):
            tenant_service.get(404)


class TestTenantList:
    def test_lists_all(self, db, tenant_service):
        db.execute.return_value = [_summary(7), _summary(8, "Globex")]

        tenants = tenant_service.list_all()

        assert [t.name for t in tenants] == ["Acme Ltd", "Globex"]


class TestTenantUpdate:
    def test_renames(self, db, audit, as_admin, tenant_service):
        db.execute_single.return_value = _summary(name="Old")

        tenant = tenant_service.update(7, TenantUpdate(name="New"))

        assert tenant.name == "New"
        assert db.execute_returning.call_args.args[1] == ("New", 7)
        assert audit.log_change.call_args.kwargs["changes"] == {"name": {"old": "Old", "new": "New"}}

    def test_same_name_is_noop(self, db, audit, tenant_service):
        db.execute_single.return_value = _summary(name="Same")

        tenant_service.update(7, TenantUpdate(name="Same"))

        db.execute_returning.assert_not_called()
        audit.log_change.assert_not_called()
