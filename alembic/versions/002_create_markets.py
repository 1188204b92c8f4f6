"""002: create markets table (mirror of on-chain markets)

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                      VARCHAR(64)         PRIMARY KEY,
            market_id_onchain       VARCHAR(20)         UNIQUE,
            title                   VARCHAR(500)        NOT NULL,
            description             TEXT,
            category                VARCHAR(64),
            slug                    VARCHAR(200),
            status                  VARCHAR(20)         NOT NULL DEFAULT 'open',
            yes_reserves            BIGINT              NOT NULL DEFAULT 0,
            no_reserves             BIGINT              NOT NULL DEFAULT 0,
            yes_price               DOUBLE PRECISION    NOT NULL DEFAULT 0.5,
            no_price                DOUBLE PRECISION    NOT NULL DEFAULT 0.5,
            fee_bps                 SMALLINT            NOT NULL DEFAULT 200,
            total_volume            BIGINT              NOT NULL DEFAULT 0,
            volume_24h              BIGINT              NOT NULL DEFAULT 0,
            trade_count             INT                 NOT NULL DEFAULT 0,
            liquidity               BIGINT              NOT NULL DEFAULT 0,
            resolution_deadline     TIMESTAMPTZ,
            resolution_outcome      VARCHAR(10),
            resolved_at             TIMESTAMPTZ,
            created_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('open', 'closed', 'resolved', 'cancelled')
            ),
            CONSTRAINT ck_markets_reserves_gte_0 CHECK (yes_reserves >= 0 AND no_reserves >= 0),
            CONSTRAINT ck_markets_open_has_reserves CHECK (
                status <> 'open' OR (yes_reserves > 0 AND no_reserves > 0)
            ),
            CONSTRAINT ck_markets_prices CHECK (
                yes_price >= 0 AND yes_price <= 1 AND no_price >= 0 AND no_price <= 1
            ),
            CONSTRAINT ck_markets_fee CHECK (fee_bps >= 0 AND fee_bps <= 10000),
            CONSTRAINT ck_markets_resolution CHECK (
                resolution_outcome IS NULL OR resolution_outcome IN ('yes', 'no', 'invalid')
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_created ON markets (status, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_markets_slug ON markets (slug);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE markets IS "
        "'Mirror of obsidian_market.aleo markets; reserves are a display cache, the chain is authoritative';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
