"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_market.domain.models import Market, MarketSnapshot

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

MARKET_COLUMNS = """
    id, market_id_onchain, title, description, category, slug, status,
    yes_reserves, no_reserves, yes_price, no_price, fee_bps,
    total_volume, volume_24h, trade_count, liquidity,
    resolution_deadline, resolution_outcome, resolved_at,
    created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_GET_MARKET_BY_ONCHAIN_SQL = text(f"""
    SELECT {MARKET_COLUMNS}
    FROM markets
    WHERE market_id_onchain = :onchain_id
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_SNAPSHOTS_SQL = text("""
    SELECT market_id, yes_price, no_price, yes_reserves, no_reserves,
           volume_cumulative, trade_count_cumulative, captured_at
    FROM market_snapshots
    WHERE market_id = :market_id
    ORDER BY captured_at ASC, id ASC
    LIMIT :limit
""")

_MARK_RESOLVED_SQL = text(f"""
    UPDATE markets
    SET status = 'resolved',
        resolution_outcome = :outcome,
        resolved_at = :resolved_at
    WHERE id = :market_id
    RETURNING {MARKET_COLUMNS}
""")

_CREATE_MARKET_SQL = text(f"""
    INSERT INTO markets (
        id, market_id_onchain, title, description, category, slug, status,
        yes_reserves, no_reserves, yes_price, no_price, fee_bps, liquidity,
        resolution_deadline
    ) VALUES (
        :id, :market_id_onchain, :title, :description, :category, :slug, 'open',
        :yes_reserves, :no_reserves, 0.5, 0.5, :fee_bps,
        CAST(:yes_reserves AS BIGINT) + CAST(:no_reserves AS BIGINT),
        :resolution_deadline
    )
    RETURNING {MARKET_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        market_id_onchain=row.market_id_onchain,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        slug=row.slug,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        yes_reserves=row.yes_reserves,  # type: ignore[attr-defined]
        no_reserves=row.no_reserves,  # type: ignore[attr-defined]
        yes_price=row.yes_price,  # type: ignore[attr-defined]
        no_price=row.no_price,  # type: ignore[attr-defined]
        fee_bps=row.fee_bps,  # type: ignore[attr-defined]
        total_volume=row.total_volume,  # type: ignore[attr-defined]
        volume_24h=row.volume_24h,  # type: ignore[attr-defined]
        trade_count=row.trade_count,  # type: ignore[attr-defined]
        liquidity=row.liquidity,  # type: ignore[attr-defined]
        resolution_deadline=row.resolution_deadline,  # type: ignore[attr-defined]
        resolution_outcome=row.resolution_outcome,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_snapshot(row: object) -> MarketSnapshot:
    return MarketSnapshot(
        market_id=row.market_id,  # type: ignore[attr-defined]
        yes_price=row.yes_price,  # type: ignore[attr-defined]
        no_price=row.no_price,  # type: ignore[attr-defined]
        yes_reserves=row.yes_reserves,  # type: ignore[attr-defined]
        no_reserves=row.no_reserves,  # type: ignore[attr-defined]
        volume_cumulative=row.volume_cumulative,  # type: ignore[attr-defined]
        trade_count_cumulative=row.trade_count_cumulative,  # type: ignore[attr-defined]
        captured_at=row.captured_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return row_to_market(row) if row else None

    async def get_market_by_onchain_id(
        self, db: AsyncSession, onchain_id: int
    ) -> Market | None:
        result = await db.execute(
            _GET_MARKET_BY_ONCHAIN_SQL, {"onchain_id": str(onchain_id)}
        )
        row = result.fetchone()
        return row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.  Parse the cursor timestamp here.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "category": category,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        rows = result.fetchall()
        return [row_to_market(row) for row in rows]

    async def list_snapshots(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[MarketSnapshot]:
        result = await db.execute(
            _LIST_SNAPSHOTS_SQL, {"market_id": market_id, "limit": limit}
        )
        return [_row_to_snapshot(row) for row in result.fetchall()]

    async def mark_resolved(
        self, db: AsyncSession, market_id: str, outcome: str, resolved_at: datetime
    ) -> Market | None:
        result = await db.execute(
            _MARK_RESOLVED_SQL,
            {"market_id": market_id, "outcome": outcome, "resolved_at": resolved_at},
        )
        row = result.fetchone()
        return row_to_market(row) if row else None

    async def create_market(
        self,
        db: AsyncSession,
        market_id: str,
        title: str,
        description: str | None,
        category: str | None,
        slug: str,
        initial_reserves: int,
        fee_bps: int,
        resolution_deadline: datetime | None,
        market_id_onchain: int | None,
    ) -> Market:
        result = await db.execute(
            _CREATE_MARKET_SQL,
            {
                "id": market_id,
                "market_id_onchain": (
                    str(market_id_onchain) if market_id_onchain is not None else None
                ),
                "title": title,
                "description": description,
                "category": category,
                "slug": slug,
                "yes_reserves": initial_reserves,
                "no_reserves": initial_reserves,
                "fee_bps": fee_bps,
                "resolution_deadline": resolution_deadline,
            },
        )
        return row_to_market(result.fetchone())
