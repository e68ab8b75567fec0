"""Pydantic schemas for gm_social API."""

from pydantic import BaseModel, Field, model_validator

from src.gm_common.datetime_utils import iso_or_none
from src.gm_common.enums import PrincipalKind
from src.gm_social.domain.models import ChatMessage, ChatRoom, Comment, Post


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=10000)


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=10000)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentUpdate(CommentCreate):
    pass


class PostResponse(BaseModel):
    id: str
    title: str
    description: str
    author_id: str
    author_kind: str
    author_name: str | None
    comment_count: int
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_post(cls, p: Post) -> "PostResponse":
        return cls(
            id=p.id,
            title=p.title,
            description=p.description,
            author_id=p.author_id,
            author_kind=p.author_kind,
            author_name=p.author_name,
            comment_count=p.comment_count,
            created_at=iso_or_none(p.created_at),
            updated_at=iso_or_none(p.updated_at),
        )


class CommentResponse(BaseModel):
    id: str
    post_id: str
    content: str
    author_id: str
    author_kind: str
    author_name: str | None
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_comment(cls, c: Comment) -> "CommentResponse":
        return cls(
            id=c.id,
            post_id=c.post_id,
            content=c.content,
            author_id=c.author_id,
            author_kind=c.author_kind,
            author_name=c.author_name,
            created_at=iso_or_none(c.created_at),
            updated_at=iso_or_none(c.updated_at),
        )


class MessageCreate(BaseModel):
    recipient_id: str = Field(..., min_length=1)
    recipient_kind: PrincipalKind
    content: str = Field("", max_length=5000)
    attachment_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def _not_blank(self) -> "MessageCreate":
        if not self.content.strip() and not self.attachment_url:
            raise ValueError("A message needs content or an attachment")
        return self


class MessageResponse(BaseModel):
    id: str
    room_id: str
    sender_id: str
    sender_kind: str
    sender_name: str | None
    content: str
    attachment_url: str | None
    is_read: bool
    created_at: str | None

    @classmethod
    def from_message(cls, m: ChatMessage) -> "MessageResponse":
        return cls(
            id=m.id,
            room_id=m.room_id,
            sender_id=m.sender_id,
            sender_kind=m.sender_kind,
            sender_name=m.sender_name,
            content=m.content,
            attachment_url=m.attachment_url,
            is_read=m.is_read,
            created_at=iso_or_none(m.created_at),
        )


class ChatRoomResponse(BaseModel):
    id: str
    user_id: str
    user_name: str | None
    participant_id: str
    participant_kind: str
    participant_name: str | None
    last_message: str | None
    last_message_at: str | None
    unread_count: int
    updated_at: str | None

    @classmethod
    def from_room(cls, r: ChatRoom) -> "ChatRoomResponse":
        return cls(
            id=r.id,
            user_id=r.user_id,
            user_name=r.user_name,
            participant_id=r.participant_id,
            participant_kind=r.participant_kind,
            participant_name=r.participant_name,
            last_message=r.last_message,
            last_message_at=iso_or_none(r.last_message_at),
            unread_count=r.unread_count,
            updated_at=iso_or_none(r.updated_at),
        )
