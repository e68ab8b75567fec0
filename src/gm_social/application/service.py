"""SocialService — posts and comments.

Updates are author-only; deletes are allowed to the author or an admin.
New comments are announced on room ``post:<id>`` after commit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.collaborators import Notifier, RedisNotifier, publish_quietly
from src.gm_common.errors import (
    CommentNotFoundError,
    ForbiddenError,
    NotAuthorError,
    PostNotFoundError,
)
from src.gm_common.id_generator import generate_id
from src.gm_gateway.auth.principal import Principal
from src.gm_social.application.schemas import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from src.gm_social.domain.models import AUTHOR_KINDS, Comment, Post
from src.gm_social.domain.repository import SocialRepositoryProtocol
from src.gm_social.infrastructure.persistence import SocialRepository

logger = logging.getLogger(__name__)


def _check_author_kind(principal: Principal) -> None:
    if principal.kind not in AUTHOR_KINDS:
        raise ForbiddenError(f"A {principal.kind.value} cannot author posts or comments")


def _is_author(item: Post | Comment, principal: Principal) -> bool:
    return item.is_authored_by(principal.id, principal.kind.value)


class SocialService:
    def __init__(
        self,
        repo: SocialRepositoryProtocol | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._repo: SocialRepositoryProtocol = repo or SocialRepository()
        self._notifier: Notifier = notifier or RedisNotifier()

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def list_posts(
        self, db: AsyncSession, author_id: str | None = None
    ) -> list[PostResponse]:
        return [PostResponse.from_post(p) for p in await self._repo.list_posts(db, author_id)]

    async def get_post(self, db: AsyncSession, post_id: str) -> PostResponse:
        return PostResponse.from_post(await self._get_post(db, post_id))

    async def create_post(
        self, db: AsyncSession, principal: Principal, body: PostCreate
    ) -> PostResponse:
        _check_author_kind(principal)
        post = Post(
            id=generate_id(),
            author_id=principal.id,
            author_kind=principal.kind.value,
            title=body.title,
            description=body.description,
        )
        try:
            created = await self._repo.insert_post(db, post)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PostResponse.from_post(created)

    async def update_post(
        self, db: AsyncSession, principal: Principal, post_id: str, body: PostUpdate
    ) -> PostResponse:
        try:
            post = await self._get_post(db, post_id)
            if not _is_author(post, principal):
                raise NotAuthorError("post")
            updated = await self._repo.update_post(db, post_id, body.title, body.description)
            if updated is None:
                raise PostNotFoundError(post_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PostResponse.from_post(updated)

    async def delete_post(self, db: AsyncSession, principal: Principal, post_id: str) -> None:
        """Delete a post together with its comments."""
        try:
            post = await self._get_post(db, post_id)
            if not (principal.is_admin or _is_author(post, principal)):
                raise NotAuthorError("post")
            await self._repo.delete_post(db, post_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Post %s deleted by %s %s", post_id, principal.kind.value, principal.id)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def list_comments(self, db: AsyncSession, post_id: str) -> list[CommentResponse]:
        await self._get_post(db, post_id)
        return [CommentResponse.from_comment(c) for c in await self._repo.list_comments(db, post_id)]

    async def add_comment(
        self, db: AsyncSession, principal: Principal, post_id: str, body: CommentCreate
    ) -> CommentResponse:
        _check_author_kind(principal)
        try:
            await self._get_post(db, post_id)
            created = await self._repo.insert_comment(
                db,
                Comment(
                    id=generate_id(),
                    post_id=post_id,
                    author_id=principal.id,
                    author_kind=principal.kind.value,
                    content=body.content,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        response = CommentResponse.from_comment(created)
        await publish_quietly(
            self._notifier, f"post:{post_id}", "comment.created", response.model_dump()
        )
        return response

    async def update_comment(
        self, db: AsyncSession, principal: Principal, comment_id: str, body: CommentUpdate
    ) -> CommentResponse:
        try:
            comment = await self._get_comment(db, comment_id)
            if not _is_author(comment, principal):
                raise NotAuthorError("comment")
            updated = await self._repo.update_comment(db, comment_id, body.content)
            if updated is None:
                raise CommentNotFoundError(comment_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return CommentResponse.from_comment(updated)

    async def delete_comment(
        self, db: AsyncSession, principal: Principal, comment_id: str
    ) -> None:
        try:
            comment = await self._get_comment(db, comment_id)
            if not (principal.is_admin or _is_author(comment, principal)):
                raise NotAuthorError("comment")
            await self._repo.delete_comment(db, comment_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def _get_post(self, db: AsyncSession, post_id: str) -> Post:
        post = await self._repo.get_post(db, post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        return post

    async def _get_comment(self, db: AsyncSession, comment_id: str) -> Comment:
        comment = await self._repo.get_comment(db, comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id)
        return comment
