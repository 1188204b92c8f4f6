"""Domain models for om_trade: trade records and bet attempts."""

from dataclasses import dataclass, field
from datetime import datetime

from src.om_chain.domain.models import TransactionRequest
from src.om_common.datetime_utils import utc_now
from src.om_common.enums import BetState, TradeSide
from src.om_common.errors import AppError
from src.om_pricing.domain.models import TradeQuote


@dataclass
class NewTrade:
    """Trade about to be appended; reserves_after are optional for legacy clients."""

    market_id: str
    side: TradeSide
    shares: int
    amount: int
    price_before: float
    price_after: float
    yes_reserves_after: int | None = None
    no_reserves_after: int | None = None
    tx_hash: str | None = None


@dataclass
class Trade:
    """Append-only trade row. Never updated or deleted."""

    id: str
    market_id: str
    side: str
    shares: int
    amount: int
    price_before: float
    price_after: float
    yes_reserves_after: int | None
    no_reserves_after: int | None
    tx_hash: str | None
    created_at: datetime


@dataclass(frozen=True)
class BetIntent:
    """What the user asked for. Wallet and side may still be missing."""

    market_id: str
    amount: int
    side: TradeSide | None = None
    wallet_address: str | None = None


@dataclass(frozen=True)
class BetTransition:
    from_state: BetState
    to_state: BetState
    at: datetime
    detail: str | None = None


# Legal moves of the bet state machine.
_TRANSITIONS: dict[BetState, frozenset[BetState]] = {
    BetState.IDLE: frozenset({BetState.VALIDATING}),
    BetState.VALIDATING: frozenset({BetState.QUOTING, BetState.REJECTED, BetState.FAILED}),
    BetState.QUOTING: frozenset({BetState.SUBMITTING, BetState.REJECTED, BetState.FAILED}),
    BetState.SUBMITTING: frozenset({BetState.CONFIRMING, BetState.FAILED}),
    BetState.CONFIRMING: frozenset({BetState.RECORDED, BetState.FAILED}),
    BetState.RECORDED: frozenset(),
    BetState.REJECTED: frozenset(),
    BetState.FAILED: frozenset(),
}

# Cancelling is only possible before the transaction is handed to the wallet.
_CANCELLABLE = frozenset({BetState.IDLE, BetState.VALIDATING, BetState.QUOTING})


@dataclass
class BetAttempt:
    """One bet from intent to outcome, with every state change kept for audit."""

    intent: BetIntent
    state: BetState = BetState.IDLE
    history: list[BetTransition] = field(default_factory=list)
    quote: TradeQuote | None = None
    transaction: TransactionRequest | None = None
    transaction_id: str | None = None
    confirmed_on_chain: bool = False
    trade: Trade | None = None
    error: AppError | None = None
    cancel_requested: bool = False

    def advance(self, to_state: BetState, detail: str | None = None) -> None:
        if to_state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Illegal bet transition {self.state.value} -> {to_state.value}")
        self.history.append(
            BetTransition(from_state=self.state, to_state=to_state, at=utc_now(), detail=detail)
        )
        self.state = to_state

    def cancel(self) -> bool:
        """Request cancellation. Returns False once the bet has been submitted."""
        if self.state not in _CANCELLABLE:
            return False
        self.cancel_requested = True
        return True

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]
