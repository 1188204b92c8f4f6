"""Domain models for om_pricing: pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.om_common.enums import TradeSide


@dataclass(frozen=True)
class Reserves:
    """Pool reserves in micro-units."""

    yes: int
    no: int

    @property
    def k(self) -> int:
        return self.yes * self.no

    def of(self, side: TradeSide) -> int:
        return self.yes if side is TradeSide.YES else self.no


@dataclass(frozen=True)
class Prices:
    yes: float
    no: float

    def of(self, side: TradeSide) -> float:
        return self.yes if side is TradeSide.YES else self.no


@dataclass(frozen=True)
class TradeQuote:
    side: TradeSide
    amount_in: int
    shares_out: int
    reserves_before: Reserves
    reserves_after: Reserves
    prices_before: Prices
    prices_after: Prices

    @property
    def price_before(self) -> float:
        """Price of the purchased side before the trade."""
        return self.prices_before.of(self.side)

    @property
    def price_after(self) -> float:
        return self.prices_after.of(self.side)

    @property
    def price_impact(self) -> float:
        return self.price_after - self.price_before

    @property
    def avg_price(self) -> float:
        """Amount paid per share received."""
        return self.amount_in / self.shares_out
