"""004: create market_snapshots table (price history)

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE market_snapshots (
            id                      BIGSERIAL           PRIMARY KEY,
            market_id               VARCHAR(64)         NOT NULL REFERENCES markets (id),
            yes_price               DOUBLE PRECISION    NOT NULL,
            no_price                DOUBLE PRECISION    NOT NULL,
            yes_reserves            BIGINT              NOT NULL,
            no_reserves             BIGINT              NOT NULL,
            volume_cumulative       BIGINT              NOT NULL DEFAULT 0,
            trade_count_cumulative  INT                 NOT NULL DEFAULT 0,
            captured_at             TIMESTAMPTZ         NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_market_snapshots_market_time ON market_snapshots (market_id, captured_at);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_snapshots CASCADE;")
