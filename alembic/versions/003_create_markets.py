"""003: create markets table

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
        CREATE TABLE markets (
            id                          VARCHAR(64)         PRIMARY KEY,
            channel_id                  VARCHAR(64)         NOT NULL,
            title                       VARCHAR(256)        NOT NULL,
            description                 TEXT,
            rules                       TEXT,
            resolution_source           VARCHAR(1000),
            created_by                  VARCHAR(64)         NOT NULL,
            trading_mode                VARCHAR(16)         NOT NULL DEFAULT 'AMM',
            yes_pool                    DOUBLE PRECISION    NOT NULL DEFAULT 0,
            no_pool                     DOUBLE PRECISION    NOT NULL DEFAULT 0,
            collateral                  BIGINT              NOT NULL DEFAULT 0,
            residual                    BIGINT              NOT NULL DEFAULT 0,
            resolved                    BOOLEAN             NOT NULL DEFAULT FALSE,
            outcome                     VARCHAR(3),
            resolved_at                 TIMESTAMPTZ,
            resolved_by                 VARCHAR(64),
            close_time                  TIMESTAMPTZ,
            expected_resolution_time    TIMESTAMPTZ,
            version                     BIGINT              NOT NULL DEFAULT 0,
            created_at                  TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_trading_mode  CHECK (trading_mode IN ('AMM', 'ORDER_BOOK')),
            CONSTRAINT ck_markets_pools_gte_0   CHECK (yes_pool >= 0 AND no_pool >= 0),
            CONSTRAINT ck_markets_collateral    CHECK (collateral >= 0),
            CONSTRAINT ck_markets_residual      CHECK (residual >= 0),
            CONSTRAINT ck_markets_outcome       CHECK (outcome IS NULL OR outcome IN ('YES', 'NO')),
            CONSTRAINT ck_markets_resolution    CHECK (
                (resolved = FALSE AND outcome IS NULL AND resolved_at IS NULL) OR
                (resolved = TRUE AND outcome IS NOT NULL AND resolved_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_channel ON markets (channel_id, created_at DESC);")
    op.execute("CREATE INDEX idx_markets_list ON markets (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets: AMM reserves, collateral in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
