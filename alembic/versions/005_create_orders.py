"""005: create orders, order_add_ons and ratings

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # transaction_id is the buyer payment, settlement_transaction_id the
    # platform -> freelancer payout; both get their FK in 007.
    op.execute("""
        CREATE TABLE orders (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL
                REFERENCES users (id) ON DELETE CASCADE,
            service_id      VARCHAR(64)     NOT NULL
                REFERENCES services (id) ON DELETE RESTRICT,
            freelancer_id   VARCHAR(64)     NOT NULL
                REFERENCES freelancers (id) ON DELETE RESTRICT,
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            order_price     BIGINT          NOT NULL,
            transaction_id  VARCHAR(64),
            settlement_transaction_id VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status CHECK (
                status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED')
            ),
            CONSTRAINT ck_orders_price_gte_0 CHECK (order_price >= 0)
        );
    """)
    # At most one IN_PROGRESS order per freelancer; start_order maps a
    # violation of this index to FreelancerBusyError.
    op.execute("""
        CREATE UNIQUE INDEX uq_orders_one_in_progress_per_freelancer
        ON orders (freelancer_id)
        WHERE status = 'IN_PROGRESS';
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (user_id, created_at);")
    op.execute("CREATE INDEX idx_orders_freelancer_status ON orders (freelancer_id, status);")
    op.execute("CREATE INDEX idx_orders_service ON orders (service_id);")
    op.execute("""
        CREATE TABLE order_add_ons (
            order_id        VARCHAR(64)     NOT NULL
                REFERENCES orders (id) ON DELETE CASCADE,
            add_on_id       VARCHAR(64)     NOT NULL
                REFERENCES add_ons (id) ON DELETE RESTRICT,
            position        SMALLINT        NOT NULL,
            PRIMARY KEY (order_id, add_on_id)
        );
    """)
    op.execute("CREATE INDEX idx_order_add_ons_add_on ON order_add_ons (add_on_id);")
    op.execute("""
        CREATE TABLE ratings (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL
                REFERENCES orders (id) ON DELETE CASCADE,
            user_id         VARCHAR(64)     NOT NULL
                REFERENCES users (id) ON DELETE CASCADE,
            freelancer_id   VARCHAR(64)     NOT NULL
                REFERENCES freelancers (id) ON DELETE CASCADE,
            rate            SMALLINT        NOT NULL,
            comment         TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ratings_rate_range CHECK (rate BETWEEN 1 AND 5),
            CONSTRAINT uq_ratings_one_per_order UNIQUE (order_id)
        );
    """)
    op.execute("CREATE INDEX idx_ratings_freelancer ON ratings (freelancer_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'Work orders: PENDING -> IN_PROGRESS -> COMPLETED';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ratings CASCADE;")
    op.execute("DROP TABLE IF EXISTS order_add_ons CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
