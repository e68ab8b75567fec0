"""Repository Protocols for posts, comments and chat."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import PrincipalKind
from src.gm_social.domain.models import ChatMessage, ChatRoom, Comment, Post, RoomKey


class SocialRepositoryProtocol(Protocol):
    async def list_posts(self, db: AsyncSession, author_id: str | None) -> list[Post]: ...

    async def get_post(self, db: AsyncSession, post_id: str) -> Post | None: ...

    async def insert_post(self, db: AsyncSession, post: Post) -> Post: ...

    async def update_post(
        self, db: AsyncSession, post_id: str, title: str | None, description: str | None
    ) -> Post | None: ...

    async def delete_post(self, db: AsyncSession, post_id: str) -> bool: ...

    async def list_comments(self, db: AsyncSession, post_id: str) -> list[Comment]: ...

    async def get_comment(self, db: AsyncSession, comment_id: str) -> Comment | None: ...

    async def insert_comment(self, db: AsyncSession, comment: Comment) -> Comment: ...

    async def update_comment(
        self, db: AsyncSession, comment_id: str, content: str
    ) -> Comment | None: ...

    async def delete_comment(self, db: AsyncSession, comment_id: str) -> bool: ...


class ChatRepositoryProtocol(Protocol):
    async def principal_exists(
        self, db: AsyncSession, kind: PrincipalKind, principal_id: str
    ) -> bool: ...

    async def get_or_create_room(
        self, db: AsyncSession, room_id: str, key: RoomKey
    ) -> ChatRoom: ...

    async def get_room(self, db: AsyncSession, room_id: str) -> ChatRoom | None: ...

    async def list_rooms(
        self, db: AsyncSession, reader_id: str, reader_kind: PrincipalKind
    ) -> list[ChatRoom]: ...

    async def insert_message(self, db: AsyncSession, message: ChatMessage) -> ChatMessage: ...

    async def list_messages(self, db: AsyncSession, room_id: str) -> list[ChatMessage]: ...

    async def mark_read(
        self, db: AsyncSession, room_id: str, reader_id: str, reader_kind: PrincipalKind
    ) -> int: ...
