from __future__ import annotations

from decimal import Decimal

import pytest

from clo_exchange.errors import ErrorKind, InvalidAmount
from clo_exchange.units import (
    display_price,
    floor_integer,
    format_fixed,
    format_units,
    from_on_chain_units,
    parse_amount,
    price_to_on_chain,
    shares_from_investment,
    to_on_chain_units,
    value_from_shares,
)


def test_to_on_chain_units_six_decimals():
    assert to_on_chain_units("1500.25", 6) == "1500250000"


def test_to_on_chain_units_floors_extra_precision():
    assert to_on_chain_units("1.9999999", 6) == "1999999"
    assert to_on_chain_units("0.000000001", 8) == "0"


def test_to_on_chain_units_handles_u128_sized_amounts():
    amount = "340282366920938463463.374607431768211455"
    assert to_on_chain_units(amount, 18) == "340282366920938463463374607431768211455"


def test_to_on_chain_units_avoids_float_drift():
    # 0.1 + 0.2 style values must not pick up binary rounding error
    assert to_on_chain_units("0.3", 6) == "300000"
    assert to_on_chain_units("1.005", 3) == "1005"


@pytest.mark.parametrize("amount", ["", "   ", "abc", "0", "-1", "NaN", "Infinity"])
def test_to_on_chain_units_rejects_invalid_amounts(amount):
    with pytest.raises(InvalidAmount) as exc_info:
        to_on_chain_units(amount, 6)
    assert exc_info.value.kind == ErrorKind.INVALID_INPUT


@pytest.mark.parametrize(
    "amount,decimals",
    [("1500.25", 6), ("0.00000001", 8), ("42", 0), ("123.456789", 6)],
)
def test_round_trip_reproduces_amount(amount, decimals):
    units = to_on_chain_units(amount, decimals)
    assert from_on_chain_units(units, decimals) == Decimal(amount)


def test_parse_amount():
    assert parse_amount(" 12.5 ") == Decimal("12.5")
    assert parse_amount(7) == Decimal(7)
    assert parse_amount(None) is None
    assert parse_amount("1e3") == Decimal("1000")
    assert parse_amount("inf") is None
    assert parse_amount(True) is None


def test_shares_from_investment_scenario():
    """300 USDC at an on-chain price of 3000 (3.000 USDC) buys 100 shares."""
    assert shares_from_investment("300", 3000) == "100.000000"


def test_shares_from_investment_zero_price_returns_zero():
    assert shares_from_investment("300", 0) == "0"
    assert shares_from_investment("300", -5) == "0"


def test_shares_from_investment_invalid_amount_returns_zero():
    assert shares_from_investment("", 3000) == "0"
    assert shares_from_investment("abc", 3000) == "0"


def test_shares_from_investment_rounds_to_six_places():
    assert shares_from_investment("1", 3000) == "0.333333"
    assert shares_from_investment("2", 3000) == "0.666667"


def test_shares_from_investment_monotonic():
    amounts = ["1", "10", "100.5", "1000"]
    shares = [Decimal(shares_from_investment(a, 2500)) for a in amounts]
    assert shares == sorted(shares)
    assert len(set(shares)) == len(shares)

    prices = [500, 1000, 2500, 10000]
    shares_by_price = [Decimal(shares_from_investment("100", p)) for p in prices]
    assert shares_by_price == sorted(shares_by_price, reverse=True)
    assert len(set(shares_by_price)) == len(shares_by_price)


def test_value_from_shares():
    assert value_from_shares("100", 3000) == "300.000000"
    assert value_from_shares("1.5", 1250) == "1.875000"
    assert value_from_shares("abc", 1000) == "0"


@pytest.mark.parametrize("amount,price", [("300", 3000), ("1", 3000), ("17.25", 1337)])
def test_value_from_shares_inverts_shares_from_investment(amount, price):
    shares = shares_from_investment(amount, price)
    value = Decimal(value_from_shares(shares, price))
    tolerance = Decimal("0.000001") * Decimal(price) / 1000
    assert abs(value - Decimal(amount)) <= tolerance


def test_display_price():
    assert display_price(3000) == "3.000"
    assert display_price(1) == "0.001"
    assert display_price("1234") == "1.234"
    assert display_price("garbage") == "0"


def test_price_to_on_chain_applies_no_scaling():
    assert price_to_on_chain("3000") == 3000
    assert price_to_on_chain("2.9") == 2
    with pytest.raises(InvalidAmount):
        price_to_on_chain("")


def test_floor_integer():
    assert floor_integer("1000000.9") == "1000000"
    assert floor_integer("0") == "0"
    with pytest.raises(InvalidAmount):
        floor_integer("-1")


def test_format_helpers_never_raise():
    assert format_fixed("1.23456789", 6) == "1.234568"
    assert format_fixed(None, 6) == "0"
    assert format_fixed("nope", 3) == "0"
    assert format_units(123456789, 8, 4) == "1.2346"
    assert format_units("not-a-number", 6) == "0"


@pytest.mark.parametrize("huge", ["1e100", "9" * 120])
def test_formatting_large_values_never_raises(huge):
    """Values with more digits than the working precision still format."""
    assert format_fixed(huge, 6) == f"{Decimal(huge):f}.000000"
    assert shares_from_investment(huge, 3000) != "0"
    assert value_from_shares(huge, 3000) != "0"
    assert display_price(huge).endswith(".000")


def test_to_on_chain_units_rejects_negative_decimals():
    with pytest.raises(InvalidAmount):
        to_on_chain_units("1", -1)
