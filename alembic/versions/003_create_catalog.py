"""003: create catalog tables (categories, subcategories, services, add_ons)

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE categories (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(100)    NOT NULL,
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_categories_name UNIQUE (name)
        );
    """)
    op.execute("""
        CREATE TABLE subcategories (
            id              VARCHAR(64)     PRIMARY KEY,
            category_id     VARCHAR(64)     NOT NULL
                REFERENCES categories (id) ON DELETE CASCADE,
            name            VARCHAR(100)    NOT NULL,
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_subcategories_category_name UNIQUE (category_id, name)
        );
    """)
    op.execute("""
        CREATE TABLE services (
            id              VARCHAR(64)     PRIMARY KEY,
            freelancer_id   VARCHAR(64)     NOT NULL
                REFERENCES freelancers (id) ON DELETE CASCADE,
            category_id     VARCHAR(64)     NOT NULL
                REFERENCES categories (id) ON DELETE RESTRICT,
            subcategory_id  VARCHAR(64)     NOT NULL
                REFERENCES subcategories (id) ON DELETE RESTRICT,
            title           VARCHAR(200)    NOT NULL,
            description     TEXT            NOT NULL,
            price           BIGINT          NOT NULL,
            image_url       TEXT,
            is_approved     BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_services_price_positive CHECK (price > 0),
            CONSTRAINT ck_services_title_len      CHECK (LENGTH(title) >= 3)
        );
    """)
    op.execute("""
        CREATE TABLE add_ons (
            id              VARCHAR(64)     PRIMARY KEY,
            service_id      VARCHAR(64)     NOT NULL
                REFERENCES services (id) ON DELETE CASCADE,
            title           VARCHAR(200)    NOT NULL,
            duration_days   INT             NOT NULL,
            price           BIGINT          NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_add_ons_price_positive    CHECK (price > 0),
            CONSTRAINT ck_add_ons_duration_positive CHECK (duration_days > 0)
        );
    """)
    op.execute("CREATE INDEX idx_subcategories_category ON subcategories (category_id);")
    op.execute("CREATE INDEX idx_services_freelancer ON services (freelancer_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_services_approved_placement
        ON services (category_id, subcategory_id)
        WHERE is_approved;
    """)
    op.execute("CREATE INDEX idx_add_ons_service ON add_ons (service_id);")
    for table in ("categories", "subcategories", "services", "add_ons"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)
    op.execute("COMMENT ON TABLE services IS 'Freelancer offerings; only approved ones are orderable';")


def downgrade() -> None:
    for table in ("add_ons", "services", "subcategories", "categories"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
