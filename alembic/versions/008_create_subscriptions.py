"""008: create subscription_plans

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE subscription_plans (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(20)     NOT NULL,
            price           BIGINT          NOT NULL,
            description     TEXT,
            features        TEXT[]          NOT NULL DEFAULT '{}',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_subscription_plans_name   UNIQUE (name),
            CONSTRAINT ck_subscription_plans_name   CHECK (name IN ('Basic', 'Pro', 'Premium')),
            CONSTRAINT ck_subscription_plans_price  CHECK (price > 0)
        );
    """)
    op.execute("""
        ALTER TABLE influencers
        ADD CONSTRAINT fk_influencers_subscription_plan
        FOREIGN KEY (subscription_plan_id) REFERENCES subscription_plans (id) ON DELETE SET NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_subscription_plans_updated_at
            BEFORE UPDATE ON subscription_plans
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE influencers DROP CONSTRAINT IF EXISTS fk_influencers_subscription_plan;")
    op.execute("DROP TABLE IF EXISTS subscription_plans CASCADE;")
