"""001: common functions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # The platform wallet is seeded once and must never be removed.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_protect_platform_wallet()
        RETURNS TRIGGER AS $$
        BEGIN
            IF OLD.owner_kind = 'ADMIN' THEN
                RAISE EXCEPTION 'platform wallet cannot be deleted';
            END IF;
            RETURN OLD;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_protect_platform_wallet();")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
