"""Transaction builders for obsidian_market.aleo and the stablecoin program.

Each builder returns an unsigned TransactionRequest with positional
typed-string inputs. Signing, proving, fee payment and broadcast belong to
the external wallet.

Transition signatures:
    place_bet_cpmm(market_id: u64, current_yes_reserves: u128,
                   current_no_reserves: u128, amount: u128, side: bool)
    create_market(market_id: u64, yes_reserves: u128, no_reserves: u128)
    resolve_market(market_id: u64, winning_side: bool)
    transfer_public_to_private(recipient: address, amount: u128)
"""

from config.settings import settings
from src.om_chain.domain.models import TransactionRequest
from src.om_common.enums import TradeSide
from src.om_pricing.domain.models import Reserves

_U64_MAX = 2**64 - 1
_U128_MAX = 2**128 - 1


def u64(value: int) -> str:
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"{value} does not fit in u64")
    return f"{value}u64"


def u128(value: int) -> str:
    if not 0 <= value <= _U128_MAX:
        raise ValueError(f"{value} does not fit in u128")
    return f"{value}u128"


def boolean(value: bool) -> str:
    return "true" if value else "false"


def build_place_bet_transaction(
    market_id: int,
    current: Reserves,
    amount: int,
    side: TradeSide,
    fee: int | None = None,
) -> TransactionRequest:
    """`current` must be the reserves just read from the chain, not a display copy."""
    return TransactionRequest(
        program=settings.PROGRAM_ID,
        function="place_bet_cpmm",
        inputs=[
            u64(market_id),
            u128(current.yes),
            u128(current.no),
            u128(amount),
            boolean(TradeSide(side).as_chain_bool()),
        ],
        fee=settings.DEFAULT_TX_FEE if fee is None else fee,
    )


def build_create_market_transaction(
    market_id: int, yes_reserves: int, no_reserves: int, fee: int | None = None
) -> TransactionRequest:
    if yes_reserves <= 0 or no_reserves <= 0:
        raise ValueError("Initial reserves must be positive on both sides")
    return TransactionRequest(
        program=settings.PROGRAM_ID,
        function="create_market",
        inputs=[u64(market_id), u128(yes_reserves), u128(no_reserves)],
        fee=settings.DEFAULT_TX_FEE if fee is None else fee,
    )


def build_resolve_market_transaction(
    market_id: int, winning_side: TradeSide, fee: int | None = None
) -> TransactionRequest:
    return TransactionRequest(
        program=settings.PROGRAM_ID,
        function="resolve_market",
        inputs=[u64(market_id), boolean(TradeSide(winning_side).as_chain_bool())],
        fee=settings.DEFAULT_TX_FEE if fee is None else fee,
    )


def build_shield_transaction(
    recipient: str, amount: int, fee: int | None = None
) -> TransactionRequest:
    """Move public stablecoin balance into a private record owned by `recipient`."""
    if amount <= 0:
        raise ValueError("Shield amount must be positive")
    return TransactionRequest(
        program=settings.STABLECOIN_PROGRAM_ID,
        function="transfer_public_to_private",
        inputs=[recipient, u128(amount)],
        fee=settings.DEFAULT_TX_FEE if fee is None else fee,
    )
