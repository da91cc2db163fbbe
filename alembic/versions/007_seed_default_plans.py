"""007: seed default plans

Revision ID: 007
Revises: 006
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO plans (id, kind, name, rate, duration_periods, min_principal, max_principal)
        VALUES
            ('PLAN-STARTER-30D',  'DAILY_INVESTMENT',  'Starter 30 days',  0.015000, 30,  10000,  500000),
            ('PLAN-PREMIUM-90D',  'DAILY_INVESTMENT',  'Premium 90 days',  0.025000, 90, 500000, NULL),
            ('PLAN-LIVE-24H',     'HOURLY_LIVE_TRADE', 'Live trade 24h',   0.002000, 24,  10000, 1000000);
    """)


def downgrade() -> None:
    op.execute(
        "DELETE FROM plans WHERE id IN ('PLAN-STARTER-30D', 'PLAN-PREMIUM-90D', 'PLAN-LIVE-24H');"
    )
