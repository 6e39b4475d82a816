# Overview: Money and margin arithmetic shared by products, sales, shipments and the dashboard.

"""
All amounts are integer cents. Rates and percentages are Decimal.
Rounding is half-up to the cent (or to 2 decimals for percentages).
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("1")
_PCT = Decimal("0.01")


def sale_total_cents(quantity: int, price_per_unit_cents: int) -> int:
    return quantity * price_per_unit_cents


def eur_to_mad_cents(eur_cents: int, exchange_rate: Decimal | str | float) -> int:
    rate = Decimal(str(exchange_rate))
    return int((Decimal(eur_cents) * rate).quantize(_CENT, rounding=ROUND_HALF_UP))


def mad_to_eur_cents(mad_cents: int, exchange_rate: Decimal | str | float) -> int:
    rate = Decimal(str(exchange_rate))
    if rate == 0:
        return 0
    return int((Decimal(mad_cents) / rate).quantize(_CENT, rounding=ROUND_HALF_UP))


def margin_percent(selling_cents: int, purchase_cents: int) -> Decimal:
    """Gross margin on the selling price: (PV - PA) / PV * 100."""
    if not selling_cents:
        return Decimal("0.00")
    pct = (Decimal(selling_cents - purchase_cents) / Decimal(selling_cents)) * 100
    return pct.quantize(_PCT, rounding=ROUND_HALF_UP)


def net_margin_percent(selling_cents: int, purchase_cents: int, packaging_cents: int) -> Decimal:
    """Margin after the per-order packaging cost."""
    return margin_percent(selling_cents, purchase_cents + packaging_cents)


def profit_cents(revenue_cents: int, cost_cents: int) -> int:
    return revenue_cents - cost_cents


def profit_margin_percent(revenue_cents: int, cost_cents: int) -> Decimal:
    """Markup on cost: (revenue - cost) / cost * 100."""
    if not cost_cents:
        return Decimal("0.00")
    pct = (Decimal(revenue_cents - cost_cents) / Decimal(cost_cents)) * 100
    return pct.quantize(_PCT, rounding=ROUND_HALF_UP)


def unit_cost_eur_cents(
    purchase_price_eur_cents: int | None,
    purchase_price_mad_cents: int | None,
    exchange_rate: Decimal,
) -> int:
    """EUR unit cost, falling back to the MAD price converted at the shipment rate."""
    if purchase_price_eur_cents:
        return purchase_price_eur_cents
    if purchase_price_mad_cents:
        return mad_to_eur_cents(purchase_price_mad_cents, exchange_rate)
    return 0


def shipment_totals_cents(
    items: list[tuple[int, int]],
    expenses_eur_cents: int,
    exchange_rate: Decimal,
) -> tuple[int, int]:
    """
    items: (quantity_received, unit_cost_eur_cents) per product.
    Returns (total_cost_eur_cents, total_cost_dh_cents).
    """
    items_eur = sum(qty * unit for qty, unit in items)
    total_eur = items_eur + expenses_eur_cents
    return total_eur, eur_to_mad_cents(total_eur, exchange_rate)
