"""004: create wallets table and seed the platform wallet

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # owner_id is a freelancer id or 'PLATFORM'; balances are signed cents
    # because LEGACY settlement debits without a floor.
    op.execute("""
        CREATE TABLE wallets (
            id              VARCHAR(64)     PRIMARY KEY,
            owner_id        VARCHAR(64)     NOT NULL,
            owner_kind      VARCHAR(20)     NOT NULL,
            balance         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_wallets_owner         UNIQUE (owner_id),
            CONSTRAINT ck_wallets_owner_kind    CHECK (owner_kind IN ('FREELANCER', 'ADMIN')),
            CONSTRAINT ck_wallets_platform_owner CHECK (
                (owner_kind = 'ADMIN') = (owner_id = 'PLATFORM')
            )
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_wallets_single_platform
        ON wallets (owner_kind)
        WHERE owner_kind = 'ADMIN';
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_protect_platform
            BEFORE DELETE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_protect_platform_wallet();
    """)
    op.execute("""
        INSERT INTO wallets (id, owner_id, owner_kind, balance)
        VALUES ('wallet-platform', 'PLATFORM', 'ADMIN', 0);
    """)
    op.execute("COMMENT ON TABLE wallets IS 'One wallet per freelancer plus the single platform wallet';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallets CASCADE;")
