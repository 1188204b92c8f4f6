"""Chain explorer HTTP client.

Mapping reads:
    GET {api}/{network}/program/{program}/mapping/{mapping}/{key}
Confirmed transactions:
    GET {api}/{network}/transaction/confirmed/{transaction_id}

Reads are idempotent, so transport errors and 5xx answers are retried a
bounded number of times before ChainUnavailableError is raised. A missing
key (404 or literal null) is never retried.
"""

import asyncio
import json
import logging

import httpx

from config.settings import settings
from src.om_chain.domain.codec import is_null, parse_onchain_market, parse_scalar
from src.om_chain.domain.models import OnchainMarket, ScanResult, TransactionStatusResult
from src.om_common.enums import TxStatus
from src.om_common.errors import (
    ChainUnavailableError,
    MappingParseError,
    OnchainMarketNotFoundError,
)
from src.om_common.retry import Sleep, retry_async
from src.om_pricing.domain.models import Reserves

logger = logging.getLogger(__name__)

_RETRYABLE = (httpx.TransportError, httpx.HTTPStatusError)


class ChainClient:
    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        network: str | None = None,
        program_id: str | None = None,
        stablecoin_program_id: str | None = None,
        retries: int | None = None,
        retry_delay_s: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._http = http or httpx.AsyncClient(timeout=settings.CHAIN_TIMEOUT_S)
        self.base_url = (base_url or settings.CHAIN_API_URL).rstrip("/")
        self.network = network or settings.CHAIN_NETWORK
        self.program_id = program_id or settings.PROGRAM_ID
        self.stablecoin_program_id = stablecoin_program_id or settings.STABLECOIN_PROGRAM_ID
        self._retries = retries if retries is not None else settings.CHAIN_FETCH_RETRIES
        self._retry_delay_s = (
            retry_delay_s if retry_delay_s is not None else settings.CHAIN_RETRY_DELAY_S
        )
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def mapping_url(self, program: str, mapping: str, key: str) -> str:
        return f"{self.base_url}/{self.network}/program/{program}/mapping/{mapping}/{key}"

    async def _get_text(self, url: str) -> str | None:
        """GET with bounded retry. Returns None on 404."""

        async def _once() -> str | None:
            resp = await self._http.get(url)
            if resp.status_code == 404:
                return None
            if resp.status_code >= 500:
                resp.raise_for_status()
            if resp.status_code >= 400:
                raise ChainUnavailableError(f"HTTP {resp.status_code} for {url}")
            return resp.text

        try:
            return await retry_async(
                _once,
                attempts=self._retries,
                delay_s=self._retry_delay_s,
                retry_on=_RETRYABLE,
                sleep=self._sleep,
            )
        except _RETRYABLE as e:
            raise ChainUnavailableError(str(e) or type(e).__name__) from e

    async def get_mapping_value(self, program: str, mapping: str, key: str) -> str | None:
        """Raw mapping value, or None when the key is absent."""
        body = await self._get_text(self.mapping_url(program, mapping, key))
        return None if is_null(body) else body

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def fetch_onchain_market(self, market_id: int) -> OnchainMarket:
        raw = await self.get_mapping_value(self.program_id, "markets", f"{market_id}u64")
        if raw is None:
            raise OnchainMarketNotFoundError(market_id)
        market = parse_onchain_market(raw)
        logger.debug(
            "On-chain market %d: yes=%d no=%d status=%s",
            market_id, market.yes_reserves, market.no_reserves, market.status.value,
        )
        return market

    async def fetch_onchain_reserves(self, market_id: int) -> Reserves:
        return (await self.fetch_onchain_market(market_id)).reserves

    async def scan_markets(self, max_id: int) -> ScanResult:
        """Look up IDs 1..max_id concurrently; absent IDs are expected, not errors."""
        ids = list(range(1, max_id + 1))
        outcomes = await asyncio.gather(
            *(self.fetch_onchain_market(i) for i in ids), return_exceptions=True
        )
        result = ScanResult()
        for market_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, OnchainMarket):
                result.markets.append(outcome)
            elif isinstance(outcome, OnchainMarketNotFoundError):
                result.missing.append(market_id)
            elif isinstance(outcome, MappingParseError):
                result.malformed[market_id] = outcome.field
            else:
                raise outcome
        return result

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def fetch_balance(self, address: str) -> int:
        """Public stablecoin balance in micro-units; an absent entry means zero."""
        raw = await self.get_mapping_value(self.stablecoin_program_id, "balances", address)
        if raw is None:
            return 0
        return parse_scalar(raw, "balance")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_status(self, transaction_id: str) -> TransactionStatusResult:
        """Unconfirmed transactions (404) report PENDING."""
        url = f"{self.base_url}/{self.network}/transaction/confirmed/{transaction_id}"
        body = await self._get_text(url)
        if is_null(body):
            return TransactionStatusResult(status=TxStatus.PENDING)
        try:
            data = json.loads(body)
        except ValueError:
            raise MappingParseError("status", body) from None
        raw_status = str(data.get("status", "")).lower() if isinstance(data, dict) else ""
        try:
            status = TxStatus(raw_status)
        except ValueError:
            raise MappingParseError("status", body) from None
        error = data.get("error") if status in (TxStatus.REJECTED, TxStatus.FAILED) else None
        return TransactionStatusResult(status=status, error=error)


_chain_client: ChainClient | None = None


def get_chain_client() -> ChainClient:
    """Get or create the process-wide chain client."""
    global _chain_client  # noqa: PLW0603
    if _chain_client is None:
        _chain_client = ChainClient()
    return _chain_client


async def close_chain_client() -> None:
    global _chain_client  # noqa: PLW0603
    if _chain_client is not None:
        await _chain_client.aclose()
        _chain_client = None
