"""
Seed the database with the first system admin.

    SYSTEM_ADMIN_EMAIL=admin@example.com SYSTEM_ADMIN_PASSWORD=... python seed.py
    python seed.py --sample-tenant "Acme Ltd" --company-admin-email boss@acme.com

Idempotent: an existing admin gets its password and role reset, an existing
sample tenant (matched by name) is reused.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from auth.config import AuthConfig
from auth.passwords import hash_password
from clients import PostgresClient, get_database_url
from core.models import Role, check_role_tenant
from utils.timezone import now_utc

logger = logging.getLogger("seed")


def upsert_user(
    postgres: PostgresClient,
    email: str,
    password: str,
    role: Role,
    tenant_id: int | None,
    rounds: int,
) -> int:
    """Create the user, or reset password/role/tenant of an existing one. Returns user id."""
    check_role_tenant(role, tenant_id)
    row = postgres.execute_returning(
        """
        INSERT INTO users (email, password_hash, role, tenant_id, created_at)
        VALUES (lower(%s), %s, %s, %s, %s)
        ON CONFLICT (email) DO UPDATE
        SET password_hash = EXCLUDED.password_hash,
            role = EXCLUDED.role,
            tenant_id = EXCLUDED.tenant_id
        RETURNING id
        """,
        (email, hash_password(password, rounds), role.value, tenant_id, now_utc()),
    )[0]
    return row["id"]


def ensure_tenant(postgres: PostgresClient, name: str) -> int:
    """Tenant id for name, creating the tenant when missing."""
    existing = postgres.execute_single("SELECT id FROM tenants WHERE name = %s ORDER BY id LIMIT 1", (name,))
    if existing is not None:
        return existing["id"]
    return postgres.execute_returning(
        "INSERT INTO tenants (name, created_at) VALUES (%s, %s) RETURNING id",
        (name, now_utc()),
    )[0]["id"]


def seed(
    postgres: PostgresClient,
    admin_email: str,
    admin_password: str,
    sample_tenant: str | None = None,
    company_admin_email: str | None = None,
    company_admin_password: str | None = None,
    config: AuthConfig | None = None,
) -> dict:
    """Seed admin (and optional sample tenant + company admin). Returns created ids."""
    config = config or AuthConfig()
    result = {
        "admin_id": upsert_user(
            postgres, admin_email, admin_password, Role.SYSTEM_ADMIN, None, config.bcrypt_rounds
        )
    }
    logger.info("System admin ready: %s", admin_email.lower())

    if sample_tenant:
        tenant_id = ensure_tenant(postgres, sample_tenant)
        result["tenant_id"] = tenant_id
        logger.info("Sample tenant ready: %s (id=%s)", sample_tenant, tenant_id)

        if company_admin_email:
            result["company_admin_id"] = upsert_user(
                postgres,
                company_admin_email,
                company_admin_password or admin_password,
                Role.COMPANY_ADMIN,
                tenant_id,
                config.bcrypt_rounds,
            )
            logger.info("Company admin ready: %s", company_admin_email.lower())

    return result


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path(__file__).parent / ".env")
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Seed the InvoiceFlow database")
    parser.add_argument("--sample-tenant", help="Also create a tenant with this name")
    parser.add_argument("--company-admin-email", help="COMPANY_ADMIN to create in the sample tenant")
    parser.add_argument("--company-admin-password", help="Defaults to the system admin password")
    args = parser.parse_args(argv)

    admin_email = os.getenv("SYSTEM_ADMIN_EMAIL")
    admin_password = os.getenv("SYSTEM_ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        logger.error("SYSTEM_ADMIN_EMAIL and SYSTEM_ADMIN_PASSWORD must be set")
        return 1
    if len(admin_password) < 6:
        logger.error("SYSTEM_ADMIN_PASSWORD must be at least 6 characters")
        return 1

    postgres = PostgresClient(get_database_url())
    try:
        seed(
            postgres,
            admin_email,
            admin_password,
            sample_tenant=args.sample_tenant,
            company_admin_email=args.company_admin_email,
            company_admin_password=args.company_admin_password,
        )
    finally:
        postgres.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
