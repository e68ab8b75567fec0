"""SocialRepository — raw SQL over posts and comments (migration 009).

Author names come from the identity table named by author_kind. The join is
generated once from AUTHOR_TABLES, so an unknown kind can never reach SQL.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import PrincipalKind
from src.gm_common.errors import InternalError
from src.gm_social.domain.models import Comment, Post

AUTHOR_TABLES: dict[PrincipalKind, str] = {
    PrincipalKind.USER: "users",
    PrincipalKind.FREELANCER: "freelancers",
    PrincipalKind.INFLUENCER: "influencers",
}


def author_join(
    alias: str, column: str = "author", prefix: str = "a"
) -> tuple[str, str]:
    """(JOIN clauses, name expression) resolving ``alias.<column>_id``.

    The identity table is picked by ``alias.<column>_kind``; ``prefix`` keeps
    the join aliases apart when one statement resolves several columns.
    """
    joins = []
    names = []
    for n, (kind, table) in enumerate(AUTHOR_TABLES.items()):
        a = f"{prefix}{n}"
        joins.append(
            f"LEFT JOIN {table} {a} "
            f"ON {alias}.{column}_kind = '{kind.value}' AND {a}.id = {alias}.{column}_id"
        )
        names.append(f"{a}.name")
    return "\n    ".join(joins), f"COALESCE({', '.join(names)})"


_POST_JOINS, _POST_AUTHOR_NAME = author_join("p")
_COMMENT_JOINS, _COMMENT_AUTHOR_NAME = author_join("c")

_POST_SELECT = f"""
    SELECT p.id, p.author_id, p.author_kind, p.title, p.description,
           {_POST_AUTHOR_NAME} AS author_name,
           (SELECT COUNT(*) FROM comments cc WHERE cc.post_id = p.id) AS comment_count,
           p.created_at, p.updated_at
    FROM posts p
    {_POST_JOINS}
"""

_COMMENT_SELECT = f"""
    SELECT c.id, c.post_id, c.author_id, c.author_kind, c.content,
           {_COMMENT_AUTHOR_NAME} AS author_name,
           c.created_at, c.updated_at
    FROM comments c
    {_COMMENT_JOINS}
"""

_LIST_POSTS_SQL = text(f"""
    {_POST_SELECT}
    WHERE (CAST(:author_id AS VARCHAR) IS NULL OR p.author_id = :author_id)
    ORDER BY p.created_at DESC, p.id DESC
""")

_GET_POST_SQL = text(f"{_POST_SELECT} WHERE p.id = :id")

_INSERT_POST_SQL = text("""
    INSERT INTO posts (id, author_id, author_kind, title, description)
    VALUES (:id, :author_id, :author_kind, :title, :description)
    RETURNING id
""")

_UPDATE_POST_SQL = text("""
    UPDATE posts
    SET title = COALESCE(:title, title),
        description = COALESCE(:description, description),
        updated_at = NOW()
    WHERE id = :id
    RETURNING id
""")

# comments go with it: comments.post_id is ON DELETE CASCADE
_DELETE_POST_SQL = text("DELETE FROM posts WHERE id = :id RETURNING id")

_LIST_COMMENTS_SQL = text(f"""
    {_COMMENT_SELECT}
    WHERE c.post_id = :post_id
    ORDER BY c.created_at DESC, c.id DESC
""")

_GET_COMMENT_SQL = text(f"{_COMMENT_SELECT} WHERE c.id = :id")

_INSERT_COMMENT_SQL = text("""
    INSERT INTO comments (id, post_id, author_id, author_kind, content)
    VALUES (:id, :post_id, :author_id, :author_kind, :content)
    RETURNING id
""")

_UPDATE_COMMENT_SQL = text("""
    UPDATE comments SET content = :content, updated_at = NOW()
    WHERE id = :id
    RETURNING id
""")

_DELETE_COMMENT_SQL = text("DELETE FROM comments WHERE id = :id RETURNING id")


def _row_to_post(row: Any) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        author_kind=row.author_kind,
        title=row.title,
        description=row.description,
        author_name=row.author_name,
        comment_count=row.comment_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_comment(row: Any) -> Comment:
    return Comment(
        id=row.id,
        post_id=row.post_id,
        author_id=row.author_id,
        author_kind=row.author_kind,
        content=row.content,
        author_name=row.author_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SocialRepository:
    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def list_posts(self, db: AsyncSession, author_id: str | None) -> list[Post]:
        result = await db.execute(_LIST_POSTS_SQL, {"author_id": author_id})
        return [_row_to_post(r) for r in result.fetchall()]

    async def get_post(self, db: AsyncSession, post_id: str) -> Post | None:
        row = (await db.execute(_GET_POST_SQL, {"id": post_id})).fetchone()
        return _row_to_post(row) if row else None

    async def insert_post(self, db: AsyncSession, post: Post) -> Post:
        await db.execute(
            _INSERT_POST_SQL,
            {
                "id": post.id,
                "author_id": post.author_id,
                "author_kind": post.author_kind,
                "title": post.title,
                "description": post.description,
            },
        )
        created = await self.get_post(db, post.id)
        if created is None:
            raise InternalError("Post insert returned no row")
        return created

    async def update_post(
        self, db: AsyncSession, post_id: str, title: str | None, description: str | None
    ) -> Post | None:
        row = (
            await db.execute(
                _UPDATE_POST_SQL, {"id": post_id, "title": title, "description": description}
            )
        ).fetchone()
        return await self.get_post(db, post_id) if row else None

    async def delete_post(self, db: AsyncSession, post_id: str) -> bool:
        return (await db.execute(_DELETE_POST_SQL, {"id": post_id})).fetchone() is not None

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def list_comments(self, db: AsyncSession, post_id: str) -> list[Comment]:
        result = await db.execute(_LIST_COMMENTS_SQL, {"post_id": post_id})
        return [_row_to_comment(r) for r in result.fetchall()]

    async def get_comment(self, db: AsyncSession, comment_id: str) -> Comment | None:
        row = (await db.execute(_GET_COMMENT_SQL, {"id": comment_id})).fetchone()
        return _row_to_comment(row) if row else None

    async def insert_comment(self, db: AsyncSession, comment: Comment) -> Comment:
        await db.execute(
            _INSERT_COMMENT_SQL,
            {
                "id": comment.id,
                "post_id": comment.post_id,
                "author_id": comment.author_id,
                "author_kind": comment.author_kind,
                "content": comment.content,
            },
        )
        created = await self.get_comment(db, comment.id)
        if created is None:
            raise InternalError("Comment insert returned no row")
        return created

    async def update_comment(
        self, db: AsyncSession, comment_id: str, content: str
    ) -> Comment | None:
        row = (
            await db.execute(_UPDATE_COMMENT_SQL, {"id": comment_id, "content": content})
        ).fetchone()
        return await self.get_comment(db, comment_id) if row else None

    async def delete_comment(self, db: AsyncSession, comment_id: str) -> bool:
        return (await db.execute(_DELETE_COMMENT_SQL, {"id": comment_id})).fetchone() is not None
