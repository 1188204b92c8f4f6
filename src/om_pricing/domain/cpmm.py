"""Constant-product market maker for binary YES/NO pools.

Reserves, amounts and shares are integer micro-units. Prices are floats and
exist only at the display boundary.

    k = yes * no
    buy YES:  no'  = no + amount,  yes' = ceil(k / no'),  shares = yes - yes'
    buy NO:   yes' = yes + amount, no'  = ceil(k / yes'), shares = no - no'

Ceiling division rounds the retained reserve up, so the pool never pays out
more than the exact curve allows: k <= yes' * no' < k + divisor.

The market's fee_bps is not applied here; quotes are fee-free.
"""

from src.om_common.enums import TradeSide
from src.om_common.errors import InvalidAmountError, InvalidPriceError, MarketNotTradeableError
from src.om_pricing.domain.models import Prices, Reserves, TradeQuote

# Amounts and reserves are stored as BIGINT in the mirror.
MAX_MICRO = 2**63 - 1


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def price_of(reserves: Reserves) -> Prices:
    """yes_price = no / (yes + no); no_price = 1 - yes_price."""
    total = reserves.yes + reserves.no
    if reserves.yes < 0 or reserves.no < 0 or total == 0:
        raise MarketNotTradeableError(reserves.yes, reserves.no)
    yes_price = reserves.no / total
    return Prices(yes=yes_price, no=1.0 - yes_price)


def quote_trade(reserves: Reserves, side: TradeSide, amount_in: int) -> TradeQuote:
    """Quote buying `side` with `amount_in` micro-units against `reserves`."""
    if amount_in <= 0:
        raise InvalidAmountError(amount_in)
    if amount_in > MAX_MICRO:
        raise InvalidAmountError(amount_in, "exceeds the largest storable amount")
    if reserves.yes <= 0 or reserves.no <= 0:
        raise MarketNotTradeableError(reserves.yes, reserves.no)
    side = TradeSide(side)

    k = reserves.k
    if side is TradeSide.YES:
        new_no = reserves.no + amount_in
        new_yes = _ceil_div(k, new_no)
        shares_out = reserves.yes - new_yes
    else:
        new_yes = reserves.yes + amount_in
        new_no = _ceil_div(k, new_yes)
        shares_out = reserves.no - new_no

    if shares_out <= 0:
        raise InvalidAmountError(amount_in, "too small to buy any shares")

    after = Reserves(yes=new_yes, no=new_no)
    prices_after = price_of(after)
    if not (0 < prices_after.yes < 1 and 0 < prices_after.no < 1):
        raise InvalidAmountError(amount_in, "trade would push a price to 0 or 1")
    return TradeQuote(
        side=side,
        amount_in=amount_in,
        shares_out=shares_out,
        reserves_before=reserves,
        reserves_after=after,
        prices_before=price_of(reserves),
        prices_after=prices_after,
    )


def roi(price: float) -> float:
    """Percent return if the side priced at `price` wins: ((1 / price) - 1) * 100."""
    if not 0 < price <= 1:
        raise InvalidPriceError(price)
    return ((1 / price) - 1) * 100


def odds_of(price: float) -> float:
    """Decimal odds (payout multiple per unit staked)."""
    if not 0 < price <= 1:
        raise InvalidPriceError(price)
    return 1 / price
