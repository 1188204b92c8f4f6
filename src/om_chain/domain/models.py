"""Domain models for om_chain: on-chain records and transaction shapes."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from src.om_common.enums import MarketStatus, TxStatus
from src.om_pricing.domain.models import Reserves


@dataclass(frozen=True)
class OnchainMarket:
    """Value of `markets[<id>u64]` in the program's mapping."""

    id: int
    creator: str
    market_type: int
    yes_reserves: int
    no_reserves: int
    status: MarketStatus

    @property
    def reserves(self) -> Reserves:
        return Reserves(yes=self.yes_reserves, no=self.no_reserves)


@dataclass(frozen=True)
class TransactionRequest:
    """Unsigned transition call handed to an external wallet for signing."""

    program: str
    function: str
    inputs: list[str]
    fee: int
    private_fee: bool = False

    def to_wallet_payload(self) -> dict[str, Any]:
        """Wallet-adapter field names (camelCase privateFee)."""
        return {
            "program": self.program,
            "function": self.function,
            "inputs": list(self.inputs),
            "fee": self.fee,
            "privateFee": self.private_fee,
        }


@dataclass(frozen=True)
class TransactionStatusResult:
    status: TxStatus
    error: str | None = None


@dataclass
class ScanResult:
    """Outcome of probing a range of speculative market IDs."""

    markets: list[OnchainMarket] = field(default_factory=list)
    missing: list[int] = field(default_factory=list)
    malformed: dict[int, str] = field(default_factory=dict)


class WalletSigner(Protocol):
    """Signs, proves and broadcasts a transaction; returns its transaction id."""

    async def execute(self, request: TransactionRequest) -> str: ...


class TransactionStatusSource(Protocol):
    async def get_status(self, transaction_id: str) -> TransactionStatusResult: ...
