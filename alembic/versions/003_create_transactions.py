"""003: create transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            transaction_type    VARCHAR(30)     NOT NULL,
            amount              BIGINT          NOT NULL,
            balance_after       BIGINT          NOT NULL,
            reference_type      VARCHAR(30),
            reference_id        VARCHAR(64),
            description         VARCHAR(500),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_type CHECK (
                transaction_type IN (
                    'PROFIT_CREDIT', 'CAPITAL_RETURN',
                    'DEPOSIT', 'WITHDRAWAL',
                    'INVESTMENT_DEBIT', 'ADMIN_ADJUSTMENT'
                )
            ),
            CONSTRAINT ck_transactions_reference_type CHECK (
                reference_type IS NULL
                OR reference_type IN ('DISTRIBUTION', 'CAPITAL_RETURN')
            ),
            CONSTRAINT ck_transactions_amount_ne_0 CHECK (amount <> 0)
        );
    """)
    op.execute("CREATE INDEX idx_transactions_user_time ON transactions (user_id, created_at DESC);")
    op.execute("""
        CREATE UNIQUE INDEX uq_transactions_core_reference
        ON transactions (reference_type, reference_id)
        WHERE reference_type IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_transactions_append_only
            BEFORE UPDATE OR DELETE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Balance log, append-only, amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
