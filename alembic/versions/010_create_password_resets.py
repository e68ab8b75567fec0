"""010: create password_resets (one-time codes for password recovery)

Revision ID: 010
Revises: 009
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # principal_id points into the table named by principal_kind, so no FK.
    # Only the bcrypt hash of the code is stored.
    op.execute("""
        CREATE TABLE password_resets (
            id              VARCHAR(64)     PRIMARY KEY,
            principal_kind  VARCHAR(20)     NOT NULL,
            principal_id    VARCHAR(64)     NOT NULL,
            otp_hash        VARCHAR(255)    NOT NULL,
            attempts        INTEGER         NOT NULL DEFAULT 0,
            expires_at      TIMESTAMPTZ     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_password_resets_principal UNIQUE (principal_kind, principal_id),
            CONSTRAINT ck_password_resets_kind CHECK (
                principal_kind IN ('user', 'freelancer', 'influencer', 'admin')
            ),
            CONSTRAINT ck_password_resets_attempts CHECK (attempts >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_password_resets_expires ON password_resets (expires_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS password_resets CASCADE;")
