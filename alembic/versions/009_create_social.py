"""009: create posts and comments

Revision ID: 009
Revises: 008
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_AUTHOR_KINDS = "('user', 'freelancer', 'influencer')"


def upgrade() -> None:
    # author_id points into the table named by author_kind, so no FK
    op.execute(f"""
        CREATE TABLE posts (
            id              VARCHAR(64)     PRIMARY KEY,
            author_id       VARCHAR(64)     NOT NULL,
            author_kind     VARCHAR(20)     NOT NULL,
            title           VARCHAR(200)    NOT NULL,
            description     TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_posts_author_kind CHECK (author_kind IN {_AUTHOR_KINDS})
        );
    """)
    op.execute(f"""
        CREATE TABLE comments (
            id              VARCHAR(64)     PRIMARY KEY,
            post_id         VARCHAR(64)     NOT NULL
                REFERENCES posts (id) ON DELETE CASCADE,
            author_id       VARCHAR(64)     NOT NULL,
            author_kind     VARCHAR(20)     NOT NULL,
            content         TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_comments_author_kind CHECK (author_kind IN {_AUTHOR_KINDS})
        );
    """)
    op.execute("CREATE INDEX idx_posts_created ON posts (created_at DESC);")
    op.execute("CREATE INDEX idx_posts_author ON posts (author_id);")
    op.execute("CREATE INDEX idx_comments_post ON comments (post_id, created_at DESC);")
    for table in ("posts", "comments"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS comments CASCADE;")
    op.execute("DROP TABLE IF EXISTS posts CASCADE;")
