"""005: create positions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # No FK on plan_id: a deleted plan surfaces as PlanNotFoundError on the next run
    op.execute("""
        CREATE TABLE positions (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            user_id         VARCHAR(64)     NOT NULL,
            plan_id         VARCHAR(64)     NOT NULL,
            kind            VARCHAR(30)     NOT NULL,
            principal       BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            start_at        TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            end_at          TIMESTAMPTZ,
            total_profit    BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_positions_kind CHECK (kind IN ('DAILY_INVESTMENT', 'HOURLY_LIVE_TRADE')),
            CONSTRAINT ck_positions_status CHECK (status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')),
            CONSTRAINT ck_positions_principal_gt_0 CHECK (principal > 0),
            CONSTRAINT ck_positions_total_profit_gte_0 CHECK (total_profit >= 0),
            CONSTRAINT ck_positions_end_after_start CHECK (end_at IS NULL OR end_at >= start_at)
        );
    """)
    op.execute("""
        CREATE INDEX idx_positions_kind_active
        ON positions (kind, start_at)
        WHERE status = 'ACTIVE';
    """)
    op.execute("CREATE INDEX idx_positions_user ON positions (user_id);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE positions IS "
        "'Investments (daily) and live trades (hourly); total_profit caches distribution_records';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
