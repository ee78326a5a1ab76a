"""Conversion between human-entered decimals and on-chain integer units.

All arithmetic goes through :class:`decimal.Decimal` so amounts never pass
through binary floating point on their way to the chain.
"""

from __future__ import annotations

from decimal import (
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_UP,
    Decimal,
    InvalidOperation,
    localcontext,
)

from .constants import (
    DISPLAY_PRECISION,
    PRICE_PRECISION,
    PRICE_SCALE,
    SHARE_DECIMALS,
)
from .errors import InvalidAmount

# Enough headroom for u128 amounts scaled by 10**decimals
_PRECISION = 80


def parse_amount(amount: str | int | Decimal | None) -> Decimal | None:
    """Parse a user-entered amount, returning None when it is not a finite number."""
    if amount is None:
        return None
    if isinstance(amount, bool):
        return None
    if isinstance(amount, (int, Decimal)):
        value = Decimal(amount)
    else:
        text = amount.strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    if not value.is_finite():
        return None
    return value


def format_fixed(value: Decimal | int | str | None, places: int) -> str:
    """Format ``value`` with exactly ``places`` fractional digits.

    Never raises: anything that does not parse formats to ``"0"``.
    """
    parsed = parse_amount(value) if not isinstance(value, Decimal) else value
    if parsed is None or not parsed.is_finite():
        return "0"
    with localcontext() as ctx:
        # quantize needs every integer digit plus the fractional places
        ctx.prec = max(_PRECISION, parsed.adjusted() + places + 2)
        quantum = Decimal(1).scaleb(-places)
        try:
            return f"{parsed.quantize(quantum, rounding=ROUND_HALF_UP):f}"
        except InvalidOperation:
            return "0"


def to_on_chain_units(amount: str | Decimal, decimals: int) -> str:
    """Convert a human amount into integer units of an asset with ``decimals``.

    Args:
        amount: Decimal string as entered by the user
        decimals: Decimal count of the asset

    Returns:
        ``floor(amount * 10**decimals)`` as a base-10 integer string

    Raises:
        InvalidAmount: If ``amount`` is not a positive finite number or
            ``decimals`` is negative
    """
    if decimals < 0:
        raise InvalidAmount(f"Invalid decimals: {decimals}")
    value = parse_amount(amount)
    if value is None or value <= 0:
        raise InvalidAmount(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        units = (value.scaleb(decimals)).to_integral_value(rounding=ROUND_DOWN)
    return str(int(units))


def from_on_chain_units(units: int | str, decimals: int) -> Decimal:
    """Scale an integer on-chain amount back to a human Decimal."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(units)).scaleb(-decimals)


def format_units(
    units: int | str, decimals: int, places: int = DISPLAY_PRECISION
) -> str:
    """Human display string for an on-chain integer amount."""
    try:
        value = from_on_chain_units(units, decimals)
    except (TypeError, ValueError):
        return "0"
    return format_fixed(value, places)


def shares_from_investment(usdc_amount: str, scaled_price: int | str) -> str:
    """Share tokens obtainable for a stablecoin amount at ``scaled_price``.

    Returns ``"0"`` for a non-positive price or an unparseable amount.
    """
    amount = parse_amount(usdc_amount)
    price = parse_amount(scaled_price)
    if amount is None or price is None or price <= 0:
        return "0"

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        share_units = (amount / (price / PRICE_SCALE)).scaleb(SHARE_DECIMALS)
        shares = share_units.scaleb(-SHARE_DECIMALS)
    return format_fixed(shares, DISPLAY_PRECISION)


def value_from_shares(share_amount: str, scaled_price: int | str) -> str:
    """Stablecoin value redeemable for ``share_amount`` at ``scaled_price``."""
    shares = parse_amount(share_amount)
    price = parse_amount(scaled_price)
    if shares is None or price is None:
        return "0"

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        usdc_units = shares.scaleb(SHARE_DECIMALS) * (price / PRICE_SCALE)
        value = usdc_units.scaleb(-SHARE_DECIMALS)
    return format_fixed(value, DISPLAY_PRECISION)


def display_price(on_chain_price: int | str) -> str:
    """On-chain scaled price to a 3-decimal display price."""
    price = parse_amount(on_chain_price)
    if price is None:
        return "0"
    return format_fixed(price / PRICE_SCALE, PRICE_PRECISION)


def price_to_on_chain(display: str) -> int:
    """Price as submitted on-chain: ``floor(display)``.

    No 1000x scaling is applied on this path; callers are expected to enter
    the price already in contract units.

    Raises:
        InvalidAmount: If ``display`` does not parse to a finite number
    """
    value = parse_amount(display)
    if value is None:
        raise InvalidAmount(f"Invalid price: {display!r}")
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def floor_integer(amount: str) -> str:
    """Floor a decimal string to an integer string (used for u128 supplies)."""
    value = parse_amount(amount)
    if value is None or value < 0:
        raise InvalidAmount(f"Invalid amount: {amount!r}")
    return str(int(value.to_integral_value(rounding=ROUND_DOWN)))
