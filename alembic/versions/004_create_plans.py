"""004: create plans table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE plans (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            kind                VARCHAR(30)     NOT NULL,
            name                VARCHAR(100)    NOT NULL,
            rate                NUMERIC(10, 6)  NOT NULL,
            duration_periods    INT             NOT NULL,
            min_principal       BIGINT          NOT NULL,
            max_principal       BIGINT,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_plans_kind CHECK (kind IN ('DAILY_INVESTMENT', 'HOURLY_LIVE_TRADE')),
            CONSTRAINT ck_plans_rate_gt_0 CHECK (rate > 0),
            CONSTRAINT ck_plans_duration_gt_0 CHECK (duration_periods > 0),
            CONSTRAINT ck_plans_min_gt_0 CHECK (min_principal > 0),
            CONSTRAINT ck_plans_max_gte_min CHECK (max_principal IS NULL OR max_principal >= min_principal)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_plans_updated_at
            BEFORE UPDATE ON plans
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE plans IS 'Admin-managed plan terms; rate is a fraction per period';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS plans CASCADE;")
