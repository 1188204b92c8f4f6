"""TradeRepository: append-only trades plus the market rows they move.

Raw text() SQL. The caller owns the transaction: insert_trade,
apply_trade_to_market and insert_snapshot are committed together.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_common.datetime_utils import utc_now
from src.om_common.id_generator import generate_id
from src.om_market.domain.models import Market
from src.om_market.infrastructure.persistence import MARKET_COLUMNS, row_to_market
from src.om_pricing.domain.models import Prices, Reserves
from src.om_trade.domain.models import NewTrade, Trade

_TRADE_COLUMNS = """
    id, market_id, side, shares, amount, price_before, price_after,
    yes_reserves_after, no_reserves_after, tx_hash, created_at
"""

_INSERT_TRADE_SQL = text(f"""
    INSERT INTO trades (
        id, market_id, side, shares, amount,
        price_before, price_after,
        yes_reserves_after, no_reserves_after,
        tx_hash, created_at
    ) VALUES (
        :id, :market_id, :side, :shares, :amount,
        :price_before, :price_after,
        :yes_reserves_after, :no_reserves_after,
        :tx_hash, :created_at
    )
    ON CONFLICT (tx_hash) WHERE tx_hash IS NOT NULL DO NOTHING
    RETURNING {_TRADE_COLUMNS}
""")

_APPLY_TRADE_SQL = text(f"""
    UPDATE markets
    SET yes_reserves = :yes_reserves,
        no_reserves = :no_reserves,
        yes_price = :yes_price,
        no_price = :no_price,
        liquidity = CAST(:yes_reserves AS BIGINT) + CAST(:no_reserves AS BIGINT),
        total_volume = total_volume + :amount,
        trade_count = trade_count + 1,
        volume_24h = (
            SELECT COALESCE(SUM(amount), 0)
            FROM trades
            WHERE market_id = :market_id
              AND created_at > NOW() - INTERVAL '24 hours'
        )
    WHERE id = :market_id
    RETURNING {MARKET_COLUMNS}
""")

_INSERT_SNAPSHOT_SQL = text("""
    INSERT INTO market_snapshots (
        market_id, yes_price, no_price, yes_reserves, no_reserves,
        volume_cumulative, trade_count_cumulative, captured_at
    ) VALUES (
        :market_id, :yes_price, :no_price, :yes_reserves, :no_reserves,
        :volume_cumulative, :trade_count_cumulative, :captured_at
    )
""")

_GET_TRADE_BY_TX_SQL = text(f"""
    SELECT {_TRADE_COLUMNS} FROM trades WHERE tx_hash = :tx_hash
""")

_LIST_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE (CAST(:market_id AS TEXT) IS NULL OR market_id = CAST(:market_id AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR CAST(id AS BIGINT) < CAST(:cursor_id AS BIGINT))
    ORDER BY CAST(id AS BIGINT) DESC
    LIMIT :limit
""")


def _row_to_trade(row: object) -> Trade:
    return Trade(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        shares=row.shares,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        price_before=row.price_before,  # type: ignore[attr-defined]
        price_after=row.price_after,  # type: ignore[attr-defined]
        yes_reserves_after=row.yes_reserves_after,  # type: ignore[attr-defined]
        no_reserves_after=row.no_reserves_after,  # type: ignore[attr-defined]
        tx_hash=row.tx_hash,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TradeRepository:
    async def insert_trade(self, db: AsyncSession, trade: NewTrade) -> Trade | None:
        """Insert one trade; None when a trade with the same tx_hash already exists."""
        result = await db.execute(
            _INSERT_TRADE_SQL,
            {
                "id": generate_id(),
                "market_id": trade.market_id,
                "side": trade.side.value,
                "shares": trade.shares,
                "amount": trade.amount,
                "price_before": trade.price_before,
                "price_after": trade.price_after,
                "yes_reserves_after": trade.yes_reserves_after,
                "no_reserves_after": trade.no_reserves_after,
                "tx_hash": trade.tx_hash,
                "created_at": utc_now(),
            },
        )
        row = result.fetchone()
        return _row_to_trade(row) if row is not None else None

    async def get_trade_by_tx_hash(self, db: AsyncSession, tx_hash: str) -> Trade | None:
        result = await db.execute(_GET_TRADE_BY_TX_SQL, {"tx_hash": tx_hash})
        row = result.fetchone()
        return _row_to_trade(row) if row is not None else None

    async def apply_trade_to_market(
        self,
        db: AsyncSession,
        market_id: str,
        reserves: Reserves,
        prices: Prices,
        amount: int,
    ) -> Market:
        result = await db.execute(
            _APPLY_TRADE_SQL,
            {
                "market_id": market_id,
                "yes_reserves": reserves.yes,
                "no_reserves": reserves.no,
                "yes_price": prices.yes,
                "no_price": prices.no,
                "amount": amount,
            },
        )
        return row_to_market(result.fetchone())

    async def insert_snapshot(self, db: AsyncSession, market: Market) -> None:
        await db.execute(
            _INSERT_SNAPSHOT_SQL,
            {
                "market_id": market.id,
                "yes_price": market.yes_price,
                "no_price": market.no_price,
                "yes_reserves": market.yes_reserves,
                "no_reserves": market.no_reserves,
                "volume_cumulative": market.total_volume,
                "trade_count_cumulative": market.trade_count,
                "captured_at": utc_now(),
            },
        )

    async def list_trades(
        self,
        db: AsyncSession,
        market_id: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_TRADES_SQL,
            {"market_id": market_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_trade(row) for row in result.fetchall()]
