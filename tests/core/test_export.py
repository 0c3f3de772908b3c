"""Tests for core/export.py - printable invoice HTML."""

from decimal import Decimal

import pytest

from core.export import render_invoice_html
from core.models import Client, Invoice


@pytest.fixture
def make_invoice(invoice_row, line_item_row):
    def build(tax_rate="10.000", discount="5.00", **overrides):
        row = invoice_row(
            tax_rate=Decimal(tax_rate),
            discount=Decimal(discount),
            # Stale stored totals; the document must not use them
            subtotal=Decimal("999"),
            total=Decimal("999"),
            **overrides,
        )
        items = [
            line_item_row(row["id"], position=1, quantity=2, unit_price="50.00"),
            line_item_row(row["id"], position=2, quantity=1, unit_price="30.00"),
        ]
        return Invoice.model_validate({**row, "line_items": items})

    return build


@pytest.fixture
def client(client_row):
    return Client.model_validate(client_row(name="Acme <Holdings>", phone="555-0100"))


class TestRenderInvoiceHtml:
    def test_amounts_computed_from_line_items(self, make_invoice, client):
        html = render_invoice_html(make_invoice(), client)

        assert "$130.00" in html
        assert "$13.00" in html
        assert "$138.00" in html
        assert "$999" not in html

    def test_tax_rate_shown_without_trailing_zeros(self, make_invoice, client):
        html = render_invoice_html(make_invoice(), client)
        assert "Tax (10%)" in html

    def test_discount_row_only_when_positive(self, make_invoice, client):
        assert "-$5.00" in render_invoice_html(make_invoice(), client)
        assert "Discount" not in render_invoice_html(make_invoice(discount="0"), client)

    def test_client_fields_escaped(self, make_invoice, client):
        html = render_invoice_html(make_invoice(), client)
        assert "Acme &lt;Holdings&gt;" in html
        assert "<Holdings>" not in html

    def test_status_badge_and_notes(self, make_invoice, client):
        html = render_invoice_html(make_invoice(status="overdue", notes="Net 30"), client)
        assert "status-overdue" in html
        assert "Net 30" in html
