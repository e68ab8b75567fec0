"""Unit tests for ChatService and chat room pairing (mocked repository and notifier)."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import (
    ChatRoomNotFoundError,
    InvalidChatPairError,
    NotChatPartyError,
    PrincipalNotFoundError,
    UpstreamError,
)
from src.gm_gateway.auth.principal import Principal
from src.gm_social.application.chat_service import ChatService
from src.gm_social.application.schemas import MessageCreate
from src.gm_social.domain.models import ChatRoom, RoomKey, room_key

ALICE = Principal(id="u-1", kind=PrincipalKind.USER)
BOB = Principal(id="fl-1", kind=PrincipalKind.FREELANCER)
CAROL = Principal(id="inf-1", kind=PrincipalKind.INFLUENCER)
ADMIN = Principal(id="adm-1", kind=PrincipalKind.ADMIN)


def _room() -> ChatRoom:
    return ChatRoom(
        id="room-1",
        user_id="u-1",
        participant_id="fl-1",
        participant_kind="freelancer",
    )


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repo() -> AsyncMock:
    repo = AsyncMock()
    repo.principal_exists.return_value = True
    repo.get_or_create_room.return_value = _room()
    repo.get_room.return_value = _room()
    repo.insert_message.side_effect = lambda db, m: m
    return repo


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repo: AsyncMock, notifier: AsyncMock) -> ChatService:
    return ChatService(repo, notifier)


class TestRoomKey:
    def test_user_is_always_first_slot(self) -> None:
        expected = RoomKey("u-1", "fl-1", "freelancer")
        assert room_key("u-1", PrincipalKind.USER, "fl-1", PrincipalKind.FREELANCER) == expected
        assert room_key("fl-1", PrincipalKind.FREELANCER, "u-1", PrincipalKind.USER) == expected

    @pytest.mark.parametrize(
        ("sender", "recipient"),
        [
            (PrincipalKind.USER, PrincipalKind.USER),
            (PrincipalKind.FREELANCER, PrincipalKind.INFLUENCER),
            (PrincipalKind.ADMIN, PrincipalKind.USER),
            (PrincipalKind.USER, PrincipalKind.ADMIN),
        ],
    )
    def test_rejects_pairs_without_exactly_one_user(
        self, sender: PrincipalKind, recipient: PrincipalKind
    ) -> None:
        with pytest.raises(InvalidChatPairError):
            room_key("a", sender, "b", recipient)


class TestMessageCreate:
    def test_needs_content_or_attachment(self) -> None:
        with pytest.raises(ValidationError):
            MessageCreate(
                recipient_id="fl-1", recipient_kind=PrincipalKind.FREELANCER, content="  "
            )

        body = MessageCreate(
            recipient_id="fl-1",
            recipient_kind=PrincipalKind.FREELANCER,
            attachment_url="https://cdn.example.com/brief.pdf",
        )
        assert body.content == ""


class TestSendMessage:
    async def test_first_message_opens_room_and_notifies_both_rooms(
        self, service: ChatService, repo: AsyncMock, notifier: AsyncMock, mock_db: AsyncMock
    ) -> None:
        body = MessageCreate(
            recipient_id="fl-1", recipient_kind=PrincipalKind.FREELANCER, content=" hi "
        )

        resp = await service.send_message(mock_db, ALICE, body)

        key = repo.get_or_create_room.await_args.args[2]
        assert key == RoomKey("u-1", "fl-1", "freelancer")
        assert (resp.room_id, resp.sender_id, resp.content) == ("room-1", "u-1", "hi")
        mock_db.commit.assert_awaited_once()
        rooms = [c.args[0] for c in notifier.publish.await_args_list]
        assert rooms == ["chat:room-1", "inbox:freelancer:fl-1"]

    async def test_participant_replies_into_same_room(
        self, service: ChatService, repo: AsyncMock, notifier: AsyncMock, mock_db: AsyncMock
    ) -> None:
        body = MessageCreate(recipient_id="u-1", recipient_kind=PrincipalKind.USER, content="yo")

        resp = await service.send_message(mock_db, BOB, body)

        assert repo.get_or_create_room.await_args.args[2] == RoomKey("u-1", "fl-1", "freelancer")
        assert resp.sender_kind == "freelancer"
        assert notifier.publish.await_args_list[-1].args[0] == "inbox:user:u-1"

    async def test_unknown_recipient(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.principal_exists.return_value = False
        body = MessageCreate(
            recipient_id="fl-x", recipient_kind=PrincipalKind.FREELANCER, content="hi"
        )

        with pytest.raises(PrincipalNotFoundError):
            await service.send_message(mock_db, ALICE, body)
        repo.get_or_create_room.assert_not_awaited()
        mock_db.rollback.assert_awaited_once()

    async def test_two_participants_cannot_chat(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        body = MessageCreate(
            recipient_id="fl-1", recipient_kind=PrincipalKind.FREELANCER, content="hi"
        )

        with pytest.raises(InvalidChatPairError):
            await service.send_message(mock_db, CAROL, body)
        repo.principal_exists.assert_not_awaited()

    async def test_notifier_failure_keeps_message(
        self, service: ChatService, notifier: AsyncMock, mock_db: AsyncMock
    ) -> None:
        notifier.publish.side_effect = UpstreamError("pubsub", "down")
        body = MessageCreate(
            recipient_id="fl-1", recipient_kind=PrincipalKind.FREELANCER, content="hi"
        )

        resp = await service.send_message(mock_db, ALICE, body)

        assert resp.content == "hi"
        mock_db.commit.assert_awaited_once()


class TestReading:
    async def test_party_lists_messages(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.list_messages.return_value = []

        assert await service.list_messages(mock_db, BOB, "room-1") == []
        repo.list_messages.assert_awaited_once_with(mock_db, "room-1")

    async def test_outsiders_are_refused(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        same_id_other_kind = Principal(id="fl-1", kind=PrincipalKind.INFLUENCER)
        for outsider in (CAROL, ADMIN, same_id_other_kind):
            with pytest.raises(NotChatPartyError):
                await service.list_messages(mock_db, outsider, "room-1")
        repo.list_messages.assert_not_awaited()

    async def test_missing_room(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_room.return_value = None

        with pytest.raises(ChatRoomNotFoundError):
            await service.list_messages(mock_db, ALICE, "room-x")

    async def test_list_rooms_is_scoped_to_caller(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.list_rooms.return_value = [_room()]

        rooms = await service.list_rooms(mock_db, BOB)

        repo.list_rooms.assert_awaited_once_with(mock_db, "fl-1", PrincipalKind.FREELANCER)
        assert [r.id for r in rooms] == ["room-1"]


class TestMarkRead:
    async def test_tells_the_other_side(
        self, service: ChatService, repo: AsyncMock, notifier: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.mark_read.return_value = 3

        assert await service.mark_read(mock_db, ALICE, "room-1") == 3

        repo.mark_read.assert_awaited_once_with(mock_db, "room-1", "u-1", PrincipalKind.USER)
        mock_db.commit.assert_awaited_once()
        room, event, payload = notifier.publish.await_args.args
        assert (room, event) == ("inbox:freelancer:fl-1", "chat.read")
        assert payload == {"room_id": "room-1", "reader_id": "u-1", "count": 3}

    async def test_nothing_unread_publishes_nothing(
        self, service: ChatService, repo: AsyncMock, notifier: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.mark_read.return_value = 0

        await service.mark_read(mock_db, BOB, "room-1")

        notifier.publish.assert_not_awaited()

    async def test_outsider_rolls_back(
        self, service: ChatService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        with pytest.raises(NotChatPartyError):
            await service.mark_read(mock_db, CAROL, "room-1")
        repo.mark_read.assert_not_awaited()
        mock_db.rollback.assert_awaited_once()
