"""ChatService — one-to-one chat between a user and a freelancer or influencer.

A room exists per (user, participant) pair and is created by its first
message. After commit each message is published on room ``chat:<room_id>``
and on the recipient's ``inbox:<kind>:<id>`` so clients without the room
open still see it arrive.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.collaborators import Notifier, RedisNotifier, publish_quietly
from src.gm_common.errors import (
    ChatRoomNotFoundError,
    NotChatPartyError,
    PrincipalNotFoundError,
)
from src.gm_common.id_generator import generate_id
from src.gm_gateway.auth.principal import Principal
from src.gm_social.application.schemas import (
    ChatRoomResponse,
    MessageCreate,
    MessageResponse,
)
from src.gm_social.domain.models import ChatMessage, ChatRoom, room_key
from src.gm_social.domain.repository import ChatRepositoryProtocol
from src.gm_social.infrastructure.chat_persistence import ChatRepository

logger = logging.getLogger(__name__)


def inbox_room(kind: str, principal_id: str) -> str:
    return f"inbox:{kind}:{principal_id}"


class ChatService:
    def __init__(
        self,
        repo: ChatRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._repo: ChatRepositoryProtocol = repo or ChatRepository()
        self._notifier: Notifier = notifier or RedisNotifier()

    async def send_message(
        self, db: AsyncSession, principal: Principal, body: MessageCreate
    ) -> MessageResponse:
        key = room_key(principal.id, principal.kind, body.recipient_id, body.recipient_kind)
        try:
            if not await self._repo.principal_exists(db, body.recipient_kind, body.recipient_id):
                raise PrincipalNotFoundError(body.recipient_kind.value, body.recipient_id)
            room = await self._repo.get_or_create_room(db, generate_id(), key)
            message = await self._repo.insert_message(
                db,
                ChatMessage(
                    id=generate_id(),
                    room_id=room.id,
                    sender_id=principal.id,
                    sender_kind=principal.kind.value,
                    content=body.content.strip(),
                    attachment_url=body.attachment_url,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        response = MessageResponse.from_message(message)
        payload = response.model_dump()
        await publish_quietly(self._notifier, f"chat:{room.id}", "chat.message", payload)
        await publish_quietly(
            self._notifier,
            inbox_room(body.recipient_kind.value, body.recipient_id),
            "chat.message",
            payload,
        )
        return response

    async def list_rooms(self, db: AsyncSession, principal: Principal) -> list[ChatRoomResponse]:
        rooms = await self._repo.list_rooms(db, principal.id, principal.kind)
        return [ChatRoomResponse.from_room(r) for r in rooms]

    async def list_messages(
        self, db: AsyncSession, principal: Principal, room_id: str
    ) -> list[MessageResponse]:
        await self._get_own_room(db, principal, room_id)
        return [
            MessageResponse.from_message(m) for m in await self._repo.list_messages(db, room_id)
        ]

    async def mark_read(self, db: AsyncSession, principal: Principal, room_id: str) -> int:
        """Mark the counterpart's messages in the room as read; returns how many changed."""
        try:
            room = await self._get_own_room(db, principal, room_id)
            changed = await self._repo.mark_read(db, room_id, principal.id, principal.kind)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if changed:
            other_id, other_kind = room.counterpart(principal.kind)
            await publish_quietly(
                self._notifier,
                inbox_room(other_kind, other_id),
                "chat.read",
                {"room_id": room_id, "reader_id": principal.id, "count": changed},
            )
        return changed

    async def _get_own_room(
        self, db: AsyncSession, principal: Principal, room_id: str
    ) -> ChatRoom:
        room = await self._repo.get_room(db, room_id)
        if room is None:
            raise ChatRoomNotFoundError(room_id)
        if not room.has_party(principal.id, principal.kind):
            raise NotChatPartyError(room_id)
        return room
