"""gm_social REST API — posts, comments and chat.

Post and comment reads are public; every chat route needs a principal.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_principal
from src.gm_gateway.auth.principal import Principal
from src.gm_social.application.chat_service import ChatService
from src.gm_social.application.schemas import (
    CommentCreate,
    CommentUpdate,
    MessageCreate,
    PostCreate,
    PostUpdate,
)
from src.gm_social.application.service import SocialService

router = APIRouter(tags=["social"])

_service = SocialService()
_chat = ChatService()


@router.get("/posts")
async def list_posts(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    author_id: str | None = Query(None),
) -> ApiResponse:
    items = await _service.list_posts(db, author_id)
    return respond(request, {"items": [p.model_dump() for p in items]})


@router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_post(db, post_id)
    return respond(request, data.model_dump())


@router.post("/posts", status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_post(db, principal, body)
    return respond(request, data.model_dump(), "Post created successfully")


@router.put("/posts/{post_id}")
async def update_post(
    post_id: str,
    body: PostUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_post(db, principal, post_id, body)
    return respond(request, data.model_dump(), "Post updated successfully")


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_post(db, principal, post_id)
    return respond(request, None, "Post deleted successfully")


@router.get("/posts/{post_id}/comments")
async def list_comments(
    post_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_comments(db, post_id)
    return respond(request, {"items": [c.model_dump() for c in items]})


@router.post("/posts/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.add_comment(db, principal, post_id, body)
    return respond(request, data.model_dump(), "Comment added successfully")


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_comment(db, principal, comment_id, body)
    return respond(request, data.model_dump(), "Comment updated successfully")


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_comment(db, principal, comment_id)
    return respond(request, None, "Comment deleted successfully")


@router.get("/chat/rooms")
async def list_chat_rooms(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _chat.list_rooms(db, principal)
    return respond(request, {"items": [r.model_dump() for r in items]})


@router.get("/chat/rooms/{room_id}/messages")
async def list_chat_messages(
    room_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _chat.list_messages(db, principal, room_id)
    return respond(request, {"items": [m.model_dump() for m in items]})


@router.post("/chat/messages", status_code=status.HTTP_201_CREATED)
async def send_chat_message(
    body: MessageCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _chat.send_message(db, principal, body)
    return respond(request, data.model_dump(), "Message sent")


@router.put("/chat/rooms/{room_id}/read")
async def mark_chat_read(
    room_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    changed = await _chat.mark_read(db, principal, room_id)
    return respond(request, {"marked_read": changed})
