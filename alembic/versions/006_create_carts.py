"""006: create carts, cart_items, cart history and platform_settings

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE platform_settings (
            key             VARCHAR(64)     PRIMARY KEY,
            value           BIGINT          NOT NULL,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        INSERT INTO platform_settings (key, value) VALUES ('platform_fee_cents', 500);
    """)
    op.execute("""
        CREATE TABLE carts (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL
                REFERENCES users (id) ON DELETE CASCADE,
            subtotal        BIGINT          NOT NULL DEFAULT 0,
            platform_fee    BIGINT          NOT NULL DEFAULT 0,
            total           BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_carts_user                UNIQUE (user_id),
            CONSTRAINT ck_carts_subtotal_gte_0      CHECK (subtotal >= 0),
            CONSTRAINT ck_carts_platform_fee_gte_0  CHECK (platform_fee >= 0),
            CONSTRAINT ck_carts_total_gte_0         CHECK (total >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE cart_items (
            cart_id         VARCHAR(64)     NOT NULL
                REFERENCES carts (id) ON DELETE CASCADE,
            order_id        VARCHAR(64)     NOT NULL
                REFERENCES orders (id) ON DELETE CASCADE,
            added_at        TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (cart_id, order_id)
        );
    """)
    op.execute("CREATE UNIQUE INDEX uq_cart_items_order ON cart_items (order_id);")
    op.execute("""
        CREATE TABLE cart_history (
            id              VARCHAR(64)     PRIMARY KEY,
            cart_id         VARCHAR(64)     NOT NULL
                REFERENCES carts (id) ON DELETE CASCADE,
            total           BIGINT          NOT NULL,
            purchased_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_cart_history_total_gte_0 CHECK (total >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_cart_history_cart ON cart_history (cart_id, purchased_at DESC);")
    # A paid order that is still PENDING may be deleted by its buyer; its
    # history line goes with it.
    op.execute("""
        CREATE TABLE cart_history_orders (
            history_id      VARCHAR(64)     NOT NULL
                REFERENCES cart_history (id) ON DELETE CASCADE,
            order_id        VARCHAR(64)     NOT NULL
                REFERENCES orders (id) ON DELETE CASCADE,
            position        SMALLINT        NOT NULL,
            PRIMARY KEY (history_id, order_id)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_carts_updated_at
            BEFORE UPDATE ON carts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE carts IS 'One cart per user; subtotal = sum of live line prices';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cart_history_orders CASCADE;")
    op.execute("DROP TABLE IF EXISTS cart_history CASCADE;")
    op.execute("DROP TABLE IF EXISTS cart_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS carts CASCADE;")
    op.execute("DROP TABLE IF EXISTS platform_settings CASCADE;")
