"""ChatRepository — raw SQL over chat_rooms and chat_messages (migration 011).

Participant and sender names are resolved through the same static
PrincipalKind -> table joins as post and comment authors.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import InternalError
from src.gm_social.domain.models import ChatMessage, ChatRoom, RoomKey
from src.gm_social.infrastructure.persistence import AUTHOR_TABLES, author_join

_EXISTS_SQL = {
    kind: text(f"SELECT EXISTS (SELECT 1 FROM {table} WHERE id = :id)")
    for kind, table in AUTHOR_TABLES.items()
}

_PARTICIPANT_JOINS, _PARTICIPANT_NAME = author_join("r", column="participant", prefix="p")
_SENDER_JOINS, _SENDER_NAME = author_join("m", column="sender", prefix="s")

_ROOM_COLUMNS = (
    "r.id, r.user_id, r.participant_id, r.participant_kind, r.last_message_id, "
    "r.created_at, r.updated_at"
)

_INSERT_ROOM_SQL = text("""
    INSERT INTO chat_rooms (id, user_id, participant_id, participant_kind)
    VALUES (:id, :user_id, :participant_id, :participant_kind)
    ON CONFLICT (user_id, participant_id, participant_kind) DO NOTHING
""")

# Locked so concurrent senders in one room serialise on last_message_id.
_LOCK_ROOM_BY_KEY_SQL = text(f"""
    SELECT {_ROOM_COLUMNS} FROM chat_rooms r
    WHERE r.user_id = :user_id
      AND r.participant_id = :participant_id
      AND r.participant_kind = :participant_kind
    FOR UPDATE
""")

_GET_ROOM_SQL = text(f"SELECT {_ROOM_COLUMNS} FROM chat_rooms r WHERE r.id = :id")

_LIST_ROOMS_SQL = text(f"""
    SELECT {_ROOM_COLUMNS},
           u.name AS user_name,
           {_PARTICIPANT_NAME} AS participant_name,
           lm.content AS last_message,
           lm.created_at AS last_message_at,
           (SELECT COUNT(*) FROM chat_messages um
            WHERE um.room_id = r.id AND NOT um.is_read
              AND NOT (um.sender_id = :reader_id AND um.sender_kind = :reader_kind)
           ) AS unread_count
    FROM chat_rooms r
    JOIN users u ON u.id = r.user_id
    LEFT JOIN chat_messages lm ON lm.id = r.last_message_id
    {_PARTICIPANT_JOINS}
    WHERE (CAST(:reader_kind AS VARCHAR) = 'user' AND r.user_id = :reader_id)
       OR (r.participant_kind = :reader_kind AND r.participant_id = :reader_id)
    ORDER BY COALESCE(lm.created_at, r.created_at) DESC, r.id DESC
""")

_INSERT_MESSAGE_SQL = text("""
    INSERT INTO chat_messages (id, room_id, sender_id, sender_kind, content, attachment_url)
    VALUES (:id, :room_id, :sender_id, :sender_kind, :content, :attachment_url)
""")

_SET_LAST_MESSAGE_SQL = text(
    "UPDATE chat_rooms SET last_message_id = :message_id WHERE id = :room_id"
)

_MESSAGE_SELECT = f"""
    SELECT m.id, m.room_id, m.sender_id, m.sender_kind, m.content, m.attachment_url,
           m.is_read, {_SENDER_NAME} AS sender_name, m.created_at
    FROM chat_messages m
    {_SENDER_JOINS}
"""

_GET_MESSAGE_SQL = text(f"{_MESSAGE_SELECT} WHERE m.id = :id")

_LIST_MESSAGES_SQL = text(f"""
    {_MESSAGE_SELECT}
    WHERE m.room_id = :room_id
    ORDER BY m.created_at, m.id
""")

_MARK_READ_SQL = text("""
    UPDATE chat_messages SET is_read = TRUE
    WHERE room_id = :room_id AND NOT is_read
      AND NOT (sender_id = :reader_id AND sender_kind = :reader_kind)
    RETURNING id
""")


def _row_to_room(row: Any) -> ChatRoom:
    mapping = row._mapping
    return ChatRoom(
        id=row.id,
        user_id=row.user_id,
        participant_id=row.participant_id,
        participant_kind=row.participant_kind,
        last_message_id=row.last_message_id,
        user_name=mapping.get("user_name"),
        participant_name=mapping.get("participant_name"),
        last_message=mapping.get("last_message"),
        last_message_at=mapping.get("last_message_at"),
        unread_count=mapping.get("unread_count") or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_message(row: Any) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        room_id=row.room_id,
        sender_id=row.sender_id,
        sender_kind=row.sender_kind,
        content=row.content,
        attachment_url=row.attachment_url,
        is_read=row.is_read,
        sender_name=row.sender_name,
        created_at=row.created_at,
    )


class ChatRepository:
    async def principal_exists(
        self, db: AsyncSession, kind: PrincipalKind, principal_id: str
    ) -> bool:
        statement = _EXISTS_SQL.get(kind)
        if statement is None:
            return False
        result = await db.execute(statement, {"id": principal_id})
        return bool(result.scalar_one())

    async def get_or_create_room(
        self, db: AsyncSession, room_id: str, key: RoomKey
    ) -> ChatRoom:
        """Create the room for this pair under room_id if missing, then lock it."""
        params = {
            "user_id": key.user_id,
            "participant_id": key.participant_id,
            "participant_kind": key.participant_kind,
        }
        await db.execute(_INSERT_ROOM_SQL, {"id": room_id, **params})
        row = (await db.execute(_LOCK_ROOM_BY_KEY_SQL, params)).fetchone()
        if row is None:
            raise InternalError(f"Chat room for {key} missing after upsert")
        return _row_to_room(row)

    async def get_room(self, db: AsyncSession, room_id: str) -> ChatRoom | None:
        row = (await db.execute(_GET_ROOM_SQL, {"id": room_id})).fetchone()
        return _row_to_room(row) if row else None

    async def list_rooms(
        self, db: AsyncSession, reader_id: str, reader_kind: PrincipalKind
    ) -> list[ChatRoom]:
        result = await db.execute(
            _LIST_ROOMS_SQL, {"reader_id": reader_id, "reader_kind": reader_kind.value}
        )
        return [_row_to_room(r) for r in result.fetchall()]

    async def insert_message(self, db: AsyncSession, message: ChatMessage) -> ChatMessage:
        await db.execute(
            _INSERT_MESSAGE_SQL,
            {
                "id": message.id,
                "room_id": message.room_id,
                "sender_id": message.sender_id,
                "sender_kind": message.sender_kind,
                "content": message.content,
                "attachment_url": message.attachment_url,
            },
        )
        await db.execute(
            _SET_LAST_MESSAGE_SQL, {"message_id": message.id, "room_id": message.room_id}
        )
        row = (await db.execute(_GET_MESSAGE_SQL, {"id": message.id})).fetchone()
        if row is None:
            raise InternalError("Chat message insert returned no row")
        return _row_to_message(row)

    async def list_messages(self, db: AsyncSession, room_id: str) -> list[ChatMessage]:
        result = await db.execute(_LIST_MESSAGES_SQL, {"room_id": room_id})
        return [_row_to_message(r) for r in result.fetchall()]

    async def mark_read(
        self, db: AsyncSession, room_id: str, reader_id: str, reader_kind: PrincipalKind
    ) -> int:
        result = await db.execute(
            _MARK_READ_SQL,
            {"room_id": room_id, "reader_id": reader_id, "reader_kind": reader_kind.value},
        )
        return len(result.fetchall())
