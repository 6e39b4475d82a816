from decimal import Decimal

import pytest

from stockroom.services.calculations import (
    eur_to_mad_cents,
    mad_to_eur_cents,
    margin_percent,
    net_margin_percent,
    profit_margin_percent,
    sale_total_cents,
    shipment_totals_cents,
    unit_cost_eur_cents,
)


def test_sale_total():
    assert sale_total_cents(3, 8900) == 26700


@pytest.mark.parametrize(
    "eur,rate,expected",
    [
        (100, "10.85", 1085),
        (349, "10.85", 3787),  # 3786.65 rounds up
        (1, "10.8450", 11),    # 10.845 rounds half up
        (0, "10.85", 0),
    ],
)
def test_eur_to_mad(eur, rate, expected):
    assert eur_to_mad_cents(eur, rate) == expected


def test_mad_to_eur_with_zero_rate():
    assert mad_to_eur_cents(1085, "10.85") == 100
    assert mad_to_eur_cents(1085, 0) == 0


def test_margin_is_on_selling_price():
    assert margin_percent(10000, 6000) == Decimal("40.00")
    assert margin_percent(0, 6000) == Decimal("0.00")
    assert margin_percent(8900, 9500) < 0


def test_net_margin_includes_packaging():
    assert net_margin_percent(10000, 6000, 800) == Decimal("32.00")


def test_profit_margin_is_on_cost():
    assert profit_margin_percent(15000, 10000) == Decimal("50.00")
    assert profit_margin_percent(15000, 0) == Decimal("0.00")


def test_unit_cost_prefers_eur_price():
    assert unit_cost_eur_cents(415, 4500, Decimal("10.85")) == 415
    assert unit_cost_eur_cents(None, 1085, Decimal("10.85")) == 100
    assert unit_cost_eur_cents(None, None, Decimal("10.85")) == 0


def test_shipment_totals():
    total_eur, total_dh = shipment_totals_cents([(10, 415), (4, 1000)], 2500, Decimal("10.85"))
    assert total_eur == 4150 + 4000 + 2500
    assert total_dh == 115553  # 10650 * 10.85 = 115552.5
