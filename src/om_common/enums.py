"""Global enums: must match DB CHECK constraints and on-chain codes exactly."""

from enum import Enum


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"

    @classmethod
    def from_onchain(cls, code: int) -> "MarketStatus":
        """Map the program's u8 status code (0..3) to a status."""
        return _ONCHAIN_STATUS[code]


_ONCHAIN_STATUS = {
    0: MarketStatus.OPEN,
    1: MarketStatus.CLOSED,
    2: MarketStatus.RESOLVED,
    3: MarketStatus.CANCELLED,
}


class TradeSide(str, Enum):
    YES = "yes"
    NO = "no"

    def as_chain_bool(self) -> bool:
        """place_bet_cpmm encodes the side as bool: true = Yes."""
        return self is TradeSide.YES


class ResolutionOutcome(str, Enum):
    YES = "yes"
    NO = "no"
    INVALID = "invalid"


class TxStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    FINALIZED = "finalized"
    REJECTED = "rejected"
    FAILED = "failed"


class BetState(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    QUOTING = "QUOTING"
    SUBMITTING = "SUBMITTING"
    CONFIRMING = "CONFIRMING"
    RECORDED = "RECORDED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
