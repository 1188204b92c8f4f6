"""Fixed-point conversion between chain micro-units and display amounts.

All reserves, amounts, shares and balances are int micro-units.
1 unit of the settlement asset = 10**decimals micro-units (decimals=6 by default).

display -> micro truncates toward zero; micro -> display is exact (Decimal).
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

DEFAULT_DECIMALS = 6
MICRO_PER_UNIT = 10**DEFAULT_DECIMALS


def display_to_micro(amount: Decimal | str | int, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a human amount to integer micro-units, truncating toward zero.

    Strings are parsed as decimals so "1.1" converts exactly; floats are
    rejected because their binary representation is not exact.
    """
    if isinstance(amount, float):
        raise TypeError("Pass a str or Decimal, not float")
    try:
        value = Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {amount!r}")
    scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


def micro_to_display(micro: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert integer micro-units to an exact Decimal display amount."""
    return Decimal(micro).scaleb(-decimals)


def format_micro(
    micro: int, symbol: str = "ALEO", places: int = 2, decimals: int = DEFAULT_DECIMALS
) -> str:
    """Display string: 1_500_000 -> '1.50 ALEO'. Truncates to `places`."""
    step = Decimal(1).scaleb(-places)
    value = micro_to_display(micro, decimals).quantize(step, rounding=ROUND_DOWN)
    return f"{value:,} {symbol}"
