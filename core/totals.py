"""
Invoice money arithmetic.

The single source of the subtotal/tax/discount/total formulas. The invoice
service, the SDK store (client-side form path) and the export renderer all
call compute_totals(); nothing else may re-derive these numbers.

Pure and exact: values are converted to Decimal (floats via their shortest
repr, so 0.1 stays 0.1). No clamping and no validation happen here; inputs
are validated at the API/model boundary. A discount larger than
subtotal + tax yields a negative total.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert an int, float, str or Decimal amount to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item[name]
    return getattr(item, name)


def line_total(quantity: Any, unit_price: Any) -> Decimal:
    """quantity * unit_price."""
    return to_decimal(quantity) * to_decimal(unit_price)


@dataclass(frozen=True)
class InvoiceTotals:
    """Computed amounts for one invoice. line_totals follow input order."""

    line_totals: tuple[Decimal, ...]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def compute_totals(
    line_items: Iterable[Any],
    tax_rate_percent: Any = ZERO,
    discount: Any = ZERO,
) -> InvoiceTotals:
    """
    Compute line totals, subtotal, tax amount and grand total.

    Args:
        line_items: Mappings or objects exposing quantity and unit_price
        tax_rate_percent: Tax rate as a percentage (10 = 10%)
        discount: Absolute discount subtracted after tax

    Returns:
        InvoiceTotals
    """
    line_totals = tuple(
        line_total(_field(item, "quantity"), _field(item, "unit_price"))
        for item in line_items
    )
    subtotal = sum(line_totals, ZERO)
    tax_amount = subtotal * to_decimal(tax_rate_percent) / HUNDRED
    total = subtotal + tax_amount - to_decimal(discount)
    return InvoiceTotals(
        line_totals=line_totals,
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=total,
    )


def format_money(amount: Decimal) -> str:
    """Two-decimal display string, e.g. '-12.50'. Display only, never stored."""
    return str(amount.quantize(CENT))
