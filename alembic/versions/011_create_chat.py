"""011: create chat_rooms and chat_messages

Revision ID: 011
Revises: 010
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "011"
down_revision: Union[str, None] = "010"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # A room pairs one user with one freelancer or influencer.
    op.execute("""
        CREATE TABLE chat_rooms (
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL
                REFERENCES users (id) ON DELETE CASCADE,
            participant_id      VARCHAR(64)     NOT NULL,
            participant_kind    VARCHAR(20)     NOT NULL,
            last_message_id     VARCHAR(64),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_chat_rooms_pair UNIQUE (user_id, participant_id, participant_kind),
            CONSTRAINT ck_chat_rooms_participant_kind CHECK (
                participant_kind IN ('freelancer', 'influencer')
            )
        );
    """)
    op.execute("""
        CREATE TABLE chat_messages (
            id              VARCHAR(64)     PRIMARY KEY,
            room_id         VARCHAR(64)     NOT NULL
                REFERENCES chat_rooms (id) ON DELETE CASCADE,
            sender_id       VARCHAR(64)     NOT NULL,
            sender_kind     VARCHAR(20)     NOT NULL,
            content         TEXT            NOT NULL DEFAULT '',
            attachment_url  TEXT,
            is_read         BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_chat_messages_sender_kind CHECK (
                sender_kind IN ('user', 'freelancer', 'influencer')
            ),
            CONSTRAINT ck_chat_messages_not_blank CHECK (
                content <> '' OR attachment_url IS NOT NULL
            )
        );
    """)
    op.execute("""
        ALTER TABLE chat_rooms ADD CONSTRAINT fk_chat_rooms_last_message
        FOREIGN KEY (last_message_id) REFERENCES chat_messages (id) ON DELETE SET NULL;
    """)
    op.execute("CREATE INDEX idx_chat_rooms_participant ON chat_rooms (participant_id, participant_kind);")
    op.execute("CREATE INDEX idx_chat_messages_room ON chat_messages (room_id, created_at);")
    op.execute("""
        CREATE TRIGGER trg_chat_rooms_updated_at
            BEFORE UPDATE ON chat_rooms
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE chat_rooms DROP CONSTRAINT IF EXISTS fk_chat_rooms_last_message;")
    op.execute("DROP TABLE IF EXISTS chat_messages CASCADE;")
    op.execute("DROP TABLE IF EXISTS chat_rooms CASCADE;")
