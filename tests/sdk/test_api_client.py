"""
Tests for InvoiceFlowClient.

Uses responses library for HTTP mocking.
"""

import pytest
import requests
import responses

from sdk.api_client import ApiClientError, ApiUnavailableError, InvoiceFlowClient

BASE_URL = "https://invoices.example.com"


@pytest.fixture
def api():
    return InvoiceFlowClient(BASE_URL + "/")


def test_init_rejects_empty_base_url():
    with pytest.raises(ValueError, match="base_url"):
        InvoiceFlowClient("")


@responses.activate
def test_login_posts_credentials(api):
    responses.add(
        responses.POST,
        f"{BASE_URL}/auth/login",
        json={"user": {"id": 2, "email": "acc@example.com"}},
        status=200,
    )

    result = api.login("acc@example.com", "secret123")

    assert result["user"]["id"] == 2
    assert responses.calls[0].request.body == b'{"email": "acc@example.com", "password": "secret123"}'


@responses.activate
def test_none_params_are_dropped(api):
    responses.add(responses.GET, f"{BASE_URL}/api/clients", json=[], status=200)

    api.list_clients(search="acme")

    url = responses.calls[0].request.url
    assert "search=acme" in url
    assert "tenant_id" not in url


@responses.activate
def test_error_body_becomes_api_client_error(api):
    responses.add(
        responses.POST,
        f"{BASE_URL}/api/clients",
        json={
            "error": "Validation failed",
            "code": "VALIDATION_ERROR",
            "details": [{"field": "email", "message": "Invalid email"}],
        },
        status=400,
    )

    with pytest.raises(ApiClientError) as exc_info:
        api.create_client({"name": "Acme", "email": "nope"})

    error = exc_info.value
    assert error.status_code == 400
    assert error.code == "VALIDATION_ERROR"
    assert error.details[0]["field"] == "email"
    assert str(error) == "Validation failed"


@responses.activate
def test_non_json_error_uses_text(api):
    responses.add(responses.GET, f"{BASE_URL}/api/invoices", body="Bad Gateway", status=502)

    with pytest.raises(ApiClientError) as exc_info:
        api.list_invoices()

    assert exc_info.value.status_code == 502
    assert exc_info.value.code is None
    assert exc_info.value.message == "Bad Gateway"


@responses.activate
def test_connection_failure_is_unavailable(api):
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/clients",
        body=requests.exceptions.ConnectionError("refused"),
    )

    with pytest.raises(ApiUnavailableError):
        api.list_clients()


@responses.activate
def test_delete_returns_none_on_204(api):
    responses.add(responses.DELETE, f"{BASE_URL}/api/invoices/abc", status=204)

    assert api.delete_invoice("abc") is None


@responses.activate
def test_bulk_create_returns_count(api):
    responses.add(responses.POST, f"{BASE_URL}/api/clients/bulk", json={"count": 3}, status=201)

    assert api.bulk_create_clients([{"name": "A", "email": "a@example.com"}] * 3) == 3


@responses.activate
def test_export_returns_html_text(api):
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/invoices/abc/export",
        body="<html>INV-1</html>",
        content_type="text/html",
        status=200,
    )

    assert api.export_invoice("abc") == "<html>INV-1</html>"


@responses.activate
def test_mark_status(api):
    responses.add(
        responses.POST,
        f"{BASE_URL}/api/invoices/abc/mark",
        json={"id": "abc", "status": "paid"},
        status=200,
    )

    assert api.mark_status("abc", "paid")["status"] == "paid"
    assert responses.calls[0].request.body == b'{"status": "paid"}'


@responses.activate
def test_logout_clears_session_cookies(api):
    responses.add(responses.POST, f"{BASE_URL}/auth/logout", json={"success": True}, status=200)
    api.session.cookies.set("token", "abc")

    api.logout()

    assert "token" not in api.session.cookies
