"""003: create trades table (append-only)

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id                  VARCHAR(64)         PRIMARY KEY,
            market_id           VARCHAR(64)         NOT NULL REFERENCES markets (id),
            side                VARCHAR(3)          NOT NULL,
            shares              BIGINT              NOT NULL,
            amount              BIGINT              NOT NULL,
            price_before        DOUBLE PRECISION    NOT NULL,
            price_after         DOUBLE PRECISION    NOT NULL,
            yes_reserves_after  BIGINT,
            no_reserves_after   BIGINT,
            tx_hash             VARCHAR(128),
            created_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_side CHECK (side IN ('yes', 'no')),
            CONSTRAINT ck_trades_positive CHECK (shares > 0 AND amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_trades_market_created ON trades (market_id, created_at DESC);")
    op.execute("CREATE UNIQUE INDEX uq_trades_tx_hash ON trades (tx_hash) WHERE tx_hash IS NOT NULL;")
    # Trades are never updated or deleted.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_trades_append_only()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'trades is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_trades_append_only
            BEFORE UPDATE OR DELETE ON trades
            FOR EACH ROW EXECUTE FUNCTION fn_trades_append_only();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_trades_append_only();")
