"""
InvoiceFlow API entry point.

    python main.py                       # serve on 0.0.0.0:8000
    uvicorn main:create_app --factory    # same, under an external uvicorn

Secrets come from Vault (VAULT_ADDR, VAULT_ROLE_ID, VAULT_SECRET_ID); a local
.env file is loaded first when present.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.admin import create_admin_router
from api.clients import create_clients_router
from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from auth import (
    AuthConfig,
    AuthDatabase,
    AuthMiddleware,
    AuthService,
    RateLimiter,
    SecurityLogger,
    TokenManager,
    create_auth_router,
)
from clients import PostgresClient, ValkeyClient, get_database_url, get_jwt_secret, get_valkey_url
from core.audit import AuditLogger
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService
from core.services.line_item_service import LineItemService
from core.services.tenant_service import TenantService
from core.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:3000"


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    postgres: PostgresClient | None = None,
    valkey: ValkeyClient | None = None,
    jwt_secret: str | None = None,
    config: AuthConfig | None = None,
) -> FastAPI:
    """
    Build the application: clients, services, routers and middleware.

    Anything not passed in is created from Vault secrets.
    """
    config = config or AuthConfig(
        cookie_secure=os.getenv("COOKIE_SECURE", "false").lower() == "true",
    )
    if postgres is None:
        postgres = PostgresClient(get_database_url())
    if valkey is None:
        valkey = ValkeyClient(get_valkey_url())
    if jwt_secret is None:
        jwt_secret = get_jwt_secret()

    # Auth
    security_logger = SecurityLogger(postgres)
    auth_service = AuthService(
        config=config,
        auth_db=AuthDatabase(postgres),
        token_manager=TokenManager(jwt_secret, config),
        rate_limiter=RateLimiter(valkey, config),
        security_logger=security_logger,
    )

    # Domain services
    audit = AuditLogger(postgres)
    client_service = ClientService(postgres, audit)
    invoice_service = InvoiceService(postgres, audit)
    line_item_service = LineItemService(postgres, audit, invoice_service)
    tenant_service = TenantService(postgres, audit, security_logger)
    user_service = UserService(postgres, audit, security_logger, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        valkey.close()
        postgres.close()

    app = FastAPI(title="InvoiceFlow", lifespan=lifespan)

    # Last added runs first: CORS -> request id/logging -> auth
    app.add_middleware(AuthMiddleware, auth_service=auth_service, cookie_name=config.cookie_name)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(create_auth_router(auth_service, config), prefix="/auth")
    app.include_router(create_admin_router(tenant_service, user_service), prefix="/admin")
    app.include_router(create_clients_router(client_service), prefix="/api")
    app.include_router(
        create_invoices_router(invoice_service, line_item_service, client_service),
        prefix="/api",
    )

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness plus a ping of PostgreSQL and Valkey."""
        try:
            postgres.ping()
            valkey.ping()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ok"}

    logger.info("InvoiceFlow app created")
    return app


def main() -> None:
    load_dotenv(Path(__file__).parent / ".env")
    configure_logging()
    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
