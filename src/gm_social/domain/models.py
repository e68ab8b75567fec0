"""Social domain models — posts, comments and one-to-one chat.

Authors and chat senders are any non-admin principal, tagged by
PrincipalKind; display names are filled in by the repository joins.
"""

from dataclasses import dataclass
from datetime import datetime

from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import InvalidChatPairError

AUTHOR_KINDS = frozenset(
    {PrincipalKind.USER, PrincipalKind.FREELANCER, PrincipalKind.INFLUENCER}
)


@dataclass
class _Authored:
    author_id: str
    author_kind: str  # PrincipalKind value

    def is_authored_by(self, principal_id: str, kind: str) -> bool:
        return self.author_id == principal_id and self.author_kind == kind


@dataclass
class Post(_Authored):
    id: str
    title: str
    description: str
    author_name: str | None = None
    comment_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Comment(_Authored):
    id: str
    post_id: str
    content: str
    author_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# A chat room always pairs a user with a freelancer or an influencer.
CHAT_PARTICIPANT_KINDS = frozenset({PrincipalKind.FREELANCER, PrincipalKind.INFLUENCER})


@dataclass(frozen=True)
class RoomKey:
    user_id: str
    participant_id: str
    participant_kind: str  # PrincipalKind value


def room_key(
    sender_id: str, sender_kind: PrincipalKind, recipient_id: str, recipient_kind: PrincipalKind
) -> RoomKey:
    """Order a sender/recipient pair into the room's (user, participant) slots."""
    if sender_kind == PrincipalKind.USER and recipient_kind in CHAT_PARTICIPANT_KINDS:
        return RoomKey(sender_id, recipient_id, recipient_kind.value)
    if recipient_kind == PrincipalKind.USER and sender_kind in CHAT_PARTICIPANT_KINDS:
        return RoomKey(recipient_id, sender_id, sender_kind.value)
    raise InvalidChatPairError(
        f"{sender_kind.value} to {recipient_kind.value}; chats pair a user "
        "with a freelancer or influencer"
    )


@dataclass
class ChatMessage:
    id: str
    room_id: str
    sender_id: str
    sender_kind: str  # PrincipalKind value
    content: str = ""
    attachment_url: str | None = None
    is_read: bool = False
    sender_name: str | None = None
    created_at: datetime | None = None


@dataclass
class ChatRoom:
    id: str
    user_id: str
    participant_id: str
    participant_kind: str
    last_message_id: str | None = None
    user_name: str | None = None
    participant_name: str | None = None
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_party(self, principal_id: str, kind: PrincipalKind) -> bool:
        if kind == PrincipalKind.USER:
            return self.user_id == principal_id
        return self.participant_kind == kind.value and self.participant_id == principal_id

    def counterpart(self, kind: PrincipalKind) -> tuple[str, str]:
        """(id, kind) of the side facing a principal of ``kind``."""
        if kind == PrincipalKind.USER:
            return self.participant_id, self.participant_kind
        return self.user_id, PrincipalKind.USER.value
