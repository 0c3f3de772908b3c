"""
Printable invoice export.

Renders an invoice as a standalone HTML page (print to PDF from a browser).
Every amount comes from core.totals, never from the stored invoice totals,
so the document always agrees with its own line items.
"""

from decimal import Decimal

from jinja2 import Environment

from core.models import Client, Invoice
from core.totals import ZERO, compute_totals, format_money
from utils.timezone import now_utc


def _percent(rate: Decimal) -> str:
    """Decimal("10.000") -> "10"."""
    return f"{rate.normalize():f}"


_env = Environment(autoescape=True)
_env.filters["money"] = format_money
_env.filters["percent"] = _percent

INVOICE_DOCUMENT = _env.from_string("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Invoice {{ invoice.invoice_number }}</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; padding: 40px; color: #1e293b; line-height: 1.6; }
        .header { display: flex; justify-content: space-between; margin-bottom: 40px; padding-bottom: 20px; border-bottom: 2px solid #e2e8f0; }
        .logo { font-size: 28px; font-weight: bold; color: #3b82f6; }
        .invoice-title { text-align: right; }
        .invoice-number { color: #64748b; font-size: 14px; }
        .status-badge { display: inline-block; padding: 4px 12px; border-radius: 4px; font-size: 12px; font-weight: 600; text-transform: uppercase; color: white; }
        .status-paid { background-color: #10b981; }
        .status-unpaid { background-color: #f59e0b; }
        .status-overdue { background-color: #ef4444; }
        .info-section { display: flex; justify-content: space-between; margin-bottom: 40px; }
        .info-block h3, .client-info h3 { font-size: 12px; color: #64748b; text-transform: uppercase; margin-bottom: 8px; }
        .client-info { background-color: #f8fafc; padding: 16px; border-radius: 8px; margin-bottom: 40px; }
        .client-name { font-size: 18px; font-weight: 600; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 40px; }
        th { text-align: left; padding: 12px; font-size: 12px; color: #64748b; text-transform: uppercase; background-color: #f8fafc; }
        td { padding: 12px; border-bottom: 1px solid #e2e8f0; }
        th:last-child, td:last-child { text-align: right; }
        .totals { margin-left: auto; width: 300px; }
        .totals-row { display: flex; justify-content: space-between; padding: 8px 0; font-size: 14px; }
        .totals-row.total { border-top: 2px solid #e2e8f0; font-size: 18px; font-weight: bold; }
        .notes { background-color: #f8fafc; padding: 16px; border-radius: 8px; margin-top: 40px; }
        .footer { margin-top: 60px; padding-top: 20px; border-top: 1px solid #e2e8f0; text-align: center; color: #64748b; font-size: 12px; }
    </style>
</head>
<body>
    <div class="header">
        <div class="logo">InvoiceFlow</div>
        <div class="invoice-title">
            <h1>INVOICE</h1>
            <div class="invoice-number">{{ invoice.invoice_number }}</div>
            <span class="status-badge status-{{ invoice.status.value }}">{{ invoice.status.value }}</span>
        </div>
    </div>

    <div class="info-section">
        <div class="info-block">
            <h3>Issue Date</h3>
            <p>{{ invoice.date.isoformat() }}</p>
        </div>
        <div class="info-block">
            <h3>Due Date</h3>
            <p>{{ invoice.due_date.isoformat() if invoice.due_date else "-" }}</p>
        </div>
    </div>

    <div class="client-info">
        <h3>Bill To</h3>
        <div class="client-name">{{ client.name }}</div>
        {% if client.company %}<p>{{ client.company }}</p>{% endif %}
        <p>{{ client.email }}</p>
        {% if client.phone %}<p>{{ client.phone }}</p>{% endif %}
        {% if client.address %}<p>{{ client.address }}</p>{% endif %}
    </div>

    <table>
        <thead>
            <tr><th>Description</th><th>Qty</th><th>Price</th><th>Total</th></tr>
        </thead>
        <tbody>
        {% for item, item_total in rows %}
            <tr>
                <td>{{ item.description }}</td>
                <td>{{ item.quantity }}</td>
                <td>${{ item.unit_price | money }}</td>
                <td>${{ item_total | money }}</td>
            </tr>
        {% endfor %}
        </tbody>
    </table>

    <div class="totals">
        <div class="totals-row"><span>Subtotal</span><span>${{ totals.subtotal | money }}</span></div>
        <div class="totals-row"><span>Tax ({{ invoice.tax_rate | percent }}%)</span><span>${{ totals.tax_amount | money }}</span></div>
        {% if show_discount %}
        <div class="totals-row"><span>Discount</span><span>-${{ invoice.discount | money }}</span></div>
        {% endif %}
        <div class="totals-row total"><span>Total</span><span>${{ totals.total | money }}</span></div>
    </div>

    {% if invoice.notes %}
    <div class="notes">
        <h3>Notes</h3>
        <p>{{ invoice.notes }}</p>
    </div>
    {% endif %}

    <div class="footer">
        <p>Thank you for your business!</p>
        <p>Generated by InvoiceFlow on {{ generated_on.isoformat() }}</p>
    </div>
</body>
</html>
""")


def render_invoice_html(invoice: Invoice, client: Client) -> str:
    """Render the printable HTML document for an invoice and its client."""
    totals = compute_totals(invoice.line_items, invoice.tax_rate, invoice.discount)
    return INVOICE_DOCUMENT.render(
        invoice=invoice,
        client=client,
        rows=list(zip(invoice.line_items, totals.line_totals)),
        totals=totals,
        show_discount=invoice.discount > ZERO,
        generated_on=now_utc().date(),
    )
