"""005: create orders table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets(id),
            side            VARCHAR(3)      NOT NULL,
            amount          BIGINT          NOT NULL,
            filled_amount   BIGINT          NOT NULL DEFAULT 0,
            price           SMALLINT        NOT NULL DEFAULT 50,
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            cancel_reason   VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_side       CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_orders_amount     CHECK (amount > 0),
            CONSTRAINT ck_orders_filled     CHECK (filled_amount >= 0 AND filled_amount <= amount),
            CONSTRAINT ck_orders_price      CHECK (price BETWEEN 1 AND 99),
            CONSTRAINT ck_orders_status     CHECK (status IN ('PENDING', 'FILLED', 'CANCELLED')),
            CONSTRAINT ck_orders_filled_status CHECK (
                status <> 'FILLED' OR filled_amount = amount
            ),
            CONSTRAINT ck_orders_cancel_reason CHECK (
                cancel_reason IS NULL OR cancel_reason IN (
                    'USER_CANCELLED', 'COUNTERPARTY_INSUFFICIENT_FUNDS', 'MARKET_RESOLVED'
                )
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_orders_market_pending
        ON orders (market_id, side, created_at, id)
        WHERE status = 'PENDING';
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'Resting order-book interest; no funds held while pending';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
