"""002: create identity tables (users, freelancers, influencers, admins)

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_CREDENTIAL_COLUMNS = """
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(100)    NOT NULL,
            email           VARCHAR(255)    NOT NULL,
            password_hash   VARCHAR(255)    NOT NULL,
            phone           VARCHAR(20),
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
"""

_PROFILE_COLUMNS = """
            date_of_birth   DATE,
            profile_picture TEXT,
"""

_TABLES = ("users", "freelancers", "influencers", "admins")


def upgrade() -> None:
    op.execute(f"""
        CREATE TABLE users (
            {_CREDENTIAL_COLUMNS}
            {_PROFILE_COLUMNS}
            CONSTRAINT uq_users_email UNIQUE (email)
        );
    """)
    op.execute(f"""
        CREATE TABLE freelancers (
            {_CREDENTIAL_COLUMNS}
            {_PROFILE_COLUMNS}
            is_verified     BOOLEAN         NOT NULL DEFAULT FALSE,
            CONSTRAINT uq_freelancers_email UNIQUE (email)
        );
    """)
    # subscription_plan_id gets its FK in 008 once subscription_plans exists
    op.execute(f"""
        CREATE TABLE influencers (
            {_CREDENTIAL_COLUMNS}
            {_PROFILE_COLUMNS}
            is_verified             BOOLEAN     NOT NULL DEFAULT FALSE,
            subscription_plan_id    VARCHAR(64),
            subscription_active     BOOLEAN     NOT NULL DEFAULT FALSE,
            subscription_start_at   TIMESTAMPTZ,
            subscription_end_at     TIMESTAMPTZ,
            CONSTRAINT uq_influencers_email UNIQUE (email),
            CONSTRAINT ck_influencers_subscription_window CHECK (
                subscription_end_at IS NULL OR subscription_start_at IS NULL
                OR subscription_end_at > subscription_start_at
            )
        );
    """)
    op.execute(f"""
        CREATE TABLE admins (
            {_CREDENTIAL_COLUMNS}
            CONSTRAINT uq_admins_email UNIQUE (email)
        );
    """)
    op.execute("""
        CREATE INDEX idx_influencers_active_subscription_end
        ON influencers (subscription_end_at)
        WHERE subscription_active;
    """)
    for table in _TABLES:
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)
    op.execute("COMMENT ON TABLE influencers IS 'Influencers; subscription window swept daily';")


def downgrade() -> None:
    for table in reversed(_TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
