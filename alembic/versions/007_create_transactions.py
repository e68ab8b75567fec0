"""007: create transactions and link orders to their payment

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # from_id/to_id reference any identity table or 'PLATFORM', so no FK.
    op.execute("""
        CREATE TABLE transactions (
            id              VARCHAR(64)     PRIMARY KEY,
            from_id         VARCHAR(64)     NOT NULL,
            from_kind       VARCHAR(20)     NOT NULL,
            to_id           VARCHAR(64)     NOT NULL,
            to_kind         VARCHAR(20)     NOT NULL,
            type            VARCHAR(30)     NOT NULL,
            amount          BIGINT          NOT NULL,
            payment_method  VARCHAR(20),
            status          VARCHAR(20)     NOT NULL,
            paid_at         TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_transactions_from_kind CHECK (
                from_kind IN ('user', 'freelancer', 'influencer', 'admin')
            ),
            CONSTRAINT ck_transactions_to_kind CHECK (
                to_kind IN ('user', 'freelancer', 'influencer', 'admin')
            ),
            CONSTRAINT ck_transactions_type CHECK (
                type IN ('USER_PAYMENT', 'RETRY_USER_PAYMENT', 'FREELANCE_PAYMENT', 'SUBSCRIPTION')
            ),
            CONSTRAINT ck_transactions_payment_method CHECK (
                payment_method IS NULL OR payment_method IN ('card', 'paypal', 'visa')
            ),
            CONSTRAINT ck_transactions_status CHECK (
                status IN ('success', 'failed', 'pending')
            )
        );
    """)
    op.execute("CREATE INDEX idx_transactions_from ON transactions (from_id, created_at DESC);")
    op.execute("CREATE INDEX idx_transactions_to ON transactions (to_id, created_at DESC);")
    op.execute("CREATE INDEX idx_transactions_status ON transactions (status, created_at DESC);")
    op.execute("""
        ALTER TABLE orders
        ADD CONSTRAINT fk_orders_transaction
        FOREIGN KEY (transaction_id) REFERENCES transactions (id) ON DELETE SET NULL;
    """)
    op.execute("""
        ALTER TABLE orders
        ADD CONSTRAINT fk_orders_settlement_transaction
        FOREIGN KEY (settlement_transaction_id) REFERENCES transactions (id) ON DELETE SET NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_transactions_updated_at
            BEFORE UPDATE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Money movement log; only status is ever corrected';")


def downgrade() -> None:
    op.execute("ALTER TABLE orders DROP CONSTRAINT IF EXISTS fk_orders_settlement_transaction;")
    op.execute("ALTER TABLE orders DROP CONSTRAINT IF EXISTS fk_orders_transaction;")
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
