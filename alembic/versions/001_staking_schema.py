"""Staking schema.

Creates users, stake_positions, boosts, nft_holdings, xp_ledger and payouts.

Revision ID: 001_staking_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_staking_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            fid BIGINT UNIQUE NOT NULL,
            username VARCHAR(64) NOT NULL,
            xp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 0,
            daily_streak INTEGER NOT NULL DEFAULT 0,
            withdrawable_balance NUMERIC(38, 8) NOT NULL DEFAULT 0,
            last_claim_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)

    # --- Stake Positions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS stake_positions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            principal NUMERIC(38, 8) NOT NULL CHECK (principal > 0),
            status VARCHAR(20) NOT NULL DEFAULT 'active'
                CHECK (status IN ('active', 'pending_unstake', 'unlocked', 'withdrawn')),
            started_at TIMESTAMPTZ NOT NULL,
            last_accrual_at TIMESTAMPTZ NOT NULL,
            unlock_at TIMESTAMPTZ,
            unclaimed_reward NUMERIC(38, 8) NOT NULL DEFAULT 0 CHECK (unclaimed_reward >= 0),
            withdrawn_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_stake_positions_user_status
        ON stake_positions(user_id, status)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_stake_positions_unlock
        ON stake_positions(unlock_at) WHERE status = 'pending_unstake'
    """)

    # --- Boosts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS boosts (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            kind VARCHAR(16) NOT NULL
                CHECK (kind IN ('BOOST_24H', 'BOOST_72H', 'BOOST_7D', 'SUPERBOOST')),
            starts_at TIMESTAMPTZ NOT NULL,
            ends_at TIMESTAMPTZ NOT NULL,
            CHECK (ends_at > starts_at)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_boosts_user_window
        ON boosts(user_id, ends_at)
    """)

    # --- NFT Holdings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS nft_holdings (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            tier INTEGER NOT NULL DEFAULT 1,
            active BOOLEAN NOT NULL DEFAULT true,
            granted_at TIMESTAMPTZ NOT NULL
        )
    """)

    # --- XP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_xp_ledger_user_time
        ON xp_ledger(user_id, created_at)
    """)

    # --- Payouts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS payouts (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            stake_id BIGINT REFERENCES stake_positions(id),
            kind VARCHAR(16) NOT NULL CHECK (kind IN ('reward', 'principal')),
            gross NUMERIC(38, 8) NOT NULL,
            fee NUMERIC(38, 8) NOT NULL,
            net NUMERIC(38, 8) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_payouts_status
        ON payouts(status, created_at)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payouts CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS nft_holdings CASCADE")
    op.execute("DROP TABLE IF EXISTS boosts CASCADE")
    op.execute("DROP TABLE IF EXISTS stake_positions CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
