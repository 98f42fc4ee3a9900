"""Mission catalog.

Revision ID: 002_missions
Revises: 001_staking_schema
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_missions"
down_revision: str | None = "001_staking_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            description VARCHAR(512),
            reward_xp INTEGER NOT NULL DEFAULT 0,
            is_daily BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS missions CASCADE")
