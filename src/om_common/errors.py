"""Unified error codes and custom exceptions.

Error code ranges:
  3xxx: Market (mirrored store)
  4xxx: Bet / Trade record
  6xxx: Chain
  7xxx: Pricing
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotOpenError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(3002, f"Market {market_id} is not open for trading (status={status})", 400)
        self.status = status


class InvalidResolutionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, detail, 400)


# --- 4xxx: Bet / Trade record ---

class BetValidationError(AppError):
    """Local pre-chain rejection. Fixable by the user; never contacts the chain."""

    def __init__(self, reason: str) -> None:
        super().__init__(4001, reason, 400)
        self.reason = reason


class InvalidTradeRecordError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, detail, 400)


# --- 6xxx: Chain ---

class OnchainMarketNotFoundError(AppError):
    """Mapping key absent: the market does not exist on-chain yet."""

    def __init__(self, market_id: int) -> None:
        super().__init__(6001, f"Market {market_id} not found on-chain", 404)
        self.market_id = market_id


class MappingParseError(AppError):
    """Chain response does not match the expected record encoding."""

    def __init__(self, field: str, raw: str | None = None) -> None:
        super().__init__(6002, f"Cannot parse on-chain field '{field}'", 502)
        self.field = field
        self.raw = raw


class ChainUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6003, f"Chain API unavailable: {detail}", 503)


class ChainRejectedError(AppError):
    """Transaction reached the chain and was rejected; needs a fresh quote."""

    def __init__(self, reason: str, transaction_id: str | None = None) -> None:
        super().__init__(6004, reason, 409)
        self.reason = reason
        self.transaction_id = transaction_id


class ConfirmationTimeoutError(AppError):
    """Outcome unknown: re-query the transaction, do not resubmit."""

    def __init__(self, transaction_id: str, attempts: int) -> None:
        super().__init__(
            6005,
            f"Transaction {transaction_id} not confirmed after {attempts} attempts; "
            "check its status before retrying",
            504,
        )
        self.transaction_id = transaction_id
        self.attempts = attempts


# --- 7xxx: Pricing ---

class InvalidAmountError(AppError):
    def __init__(self, amount: int, detail: str = "amount must be positive") -> None:
        super().__init__(7001, f"Invalid amount {amount}: {detail}", 400)
        self.amount = amount


class MarketNotTradeableError(AppError):
    def __init__(self, yes_reserves: int, no_reserves: int) -> None:
        super().__init__(
            7002,
            f"Market is not tradeable with reserves yes={yes_reserves} no={no_reserves}",
            409,
        )


class InvalidPriceError(AppError):
    def __init__(self, price: float) -> None:
        super().__init__(7003, f"Price must be in (0, 1], got {price}", 400)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class RequestValidationFailed(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 400)


class StoreError(AppError):
    """Mirrored-store failure. After a confirmed chain trade the chain stays the truth."""

    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Store error: {detail}", 500)
