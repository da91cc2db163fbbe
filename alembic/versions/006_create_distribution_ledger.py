"""006: create distribution_records and capital_returns

Revision ID: 006
Revises: 005
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE distribution_records (
            id              BIGSERIAL       PRIMARY KEY,
            position_id     VARCHAR(64)     NOT NULL REFERENCES positions (id),
            user_id         VARCHAR(64)     NOT NULL,
            period_number   INT             NOT NULL,
            profit          BIGINT          NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_distribution_position_period UNIQUE (position_id, period_number),
            CONSTRAINT ck_distribution_period_gte_1 CHECK (period_number >= 1),
            CONSTRAINT ck_distribution_profit_gte_0 CHECK (profit >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_distribution_created ON distribution_records (created_at);")
    op.execute("""
        CREATE TRIGGER trg_distribution_records_append_only
            BEFORE UPDATE OR DELETE ON distribution_records
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE distribution_records IS "
        "'One row per (position, period) credited; the unique key is the idempotency guard';"
    )

    op.execute("""
        CREATE TABLE capital_returns (
            position_id     VARCHAR(64)     PRIMARY KEY REFERENCES positions (id),
            user_id         VARCHAR(64)     NOT NULL,
            amount          BIGINT          NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_capital_returns_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute(
        "COMMENT ON TABLE capital_returns IS "
        "'At most one principal return per position';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS capital_returns CASCADE;")
    op.execute("DROP TABLE IF EXISTS distribution_records CASCADE;")
