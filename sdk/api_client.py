"""
HTTP client for the InvoiceFlow REST API.

Wraps a requests.Session so the session cookie set by /auth/login is sent
on every later call. Any non-2xx response raises ApiClientError; a request
that never reached the server raises ApiUnavailableError.
"""

import logging
from typing import Any
from uuid import UUID

import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Raised when an API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)


class ApiUnavailableError(ApiClientError):
    """The server could not be reached (connection refused, DNS, timeout)."""


class InvoiceFlowClient:
    """Typed calls for every InvoiceFlow endpoint the SDK uses."""

    def __init__(self, base_url: str, timeout: float = 10, session: requests.Session | None = None):
        """
        Args:
            base_url: Server root, e.g. "http://localhost:8000"
            timeout: Per-request timeout in seconds
            session: Optional preconfigured session (cookies, adapters)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self.session.request(
                method, url, json=json, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"API unreachable: {method} {path}: {e}")
            raise ApiUnavailableError(f"Connection failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("error") or response.text or f"Request failed: {response.status_code}"
            logger.info(f"API error {response.status_code} on {method} {path}: {message}")
            raise ApiClientError(
                message,
                status_code=response.status_code,
                code=body.get("code"),
                details=body.get("details"),
            )

        if response.status_code == 204:
            return None
        if not expect_json:
            return response.text
        return response.json()

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def login(self, email: str, password: str) -> dict:
        """Log in; the session cookie is kept on self.session."""
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    def logout(self) -> None:
        self._request("POST", "/auth/logout")
        self.session.cookies.clear()

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    def list_clients(self, search: str | None = None, tenant_id: int | None = None) -> list[dict]:
        return self._request("GET", "/api/clients", params={"search": search, "tenant_id": tenant_id})

    def get_client(self, client_id: str | UUID) -> dict:
        return self._request("GET", f"/api/clients/{client_id}")

    def create_client(self, data: dict) -> dict:
        return self._request("POST", "/api/clients", json=data)

    def bulk_create_clients(self, rows: list[dict]) -> int:
        """Create many clients at once. Returns the number created."""
        return self._request("POST", "/api/clients/bulk", json=rows)["count"]

    def update_client(self, client_id: str | UUID, data: dict) -> dict:
        return self._request("PUT", f"/api/clients/{client_id}", json=data)

    def delete_client(self, client_id: str | UUID) -> None:
        self._request("DELETE", f"/api/clients/{client_id}")

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def list_invoices(
        self,
        status: str | None = None,
        client_id: str | UUID | None = None,
        tenant_id: int | None = None,
    ) -> list[dict]:
        return self._request(
            "GET",
            "/api/invoices",
            params={"status": status, "client_id": client_id, "tenant_id": tenant_id},
        )

    def get_invoice(self, invoice_id: str | UUID) -> dict:
        return self._request("GET", f"/api/invoices/{invoice_id}")

    def create_invoice(self, data: dict) -> dict:
        return self._request("POST", "/api/invoices", json=data)

    def update_invoice(self, invoice_id: str | UUID, data: dict) -> dict:
        return self._request("PUT", f"/api/invoices/{invoice_id}", json=data)

    def delete_invoice(self, invoice_id: str | UUID) -> None:
        self._request("DELETE", f"/api/invoices/{invoice_id}")

    def mark_status(self, invoice_id: str | UUID, status: str) -> dict:
        return self._request("POST", f"/api/invoices/{invoice_id}/mark", json={"status": status})

    def export_invoice(self, invoice_id: str | UUID) -> str:
        """Printable HTML document for an invoice."""
        return self._request("GET", f"/api/invoices/{invoice_id}/export", expect_json=False)
