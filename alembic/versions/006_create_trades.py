"""006: create trades table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id                  VARCHAR(64)         PRIMARY KEY,
            user_id             VARCHAR(64)         NOT NULL,
            market_id           VARCHAR(64)         NOT NULL REFERENCES markets(id),
            side                VARCHAR(3)          NOT NULL,
            trade_type          VARCHAR(8)          NOT NULL,
            amount              BIGINT              NOT NULL,
            shares              DOUBLE PRECISION,
            order_id            VARCHAR(64),
            yes_price_after     DOUBLE PRECISION,
            created_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_side       CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_trades_type       CHECK (trade_type IN ('BUY', 'SELL', 'MATCH')),
            CONSTRAINT ck_trades_amount     CHECK (amount >= 0),
            CONSTRAINT ck_trades_match_order CHECK (trade_type <> 'MATCH' OR order_id IS NOT NULL),
            CONSTRAINT ck_trades_price      CHECK (
                yes_price_after IS NULL OR (yes_price_after > 0 AND yes_price_after < 1)
            )
        );
    """)
    op.execute("CREATE INDEX idx_trades_user ON trades (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_trades_market_prices
        ON trades (market_id, id DESC)
        WHERE yes_price_after IS NOT NULL;
    """)
    op.execute("COMMENT ON TABLE trades IS 'Append-only trade history, never updated or deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
