"""
Post repository — every read and write against the post aggregate.

Reads resolve author and commenter references into user-summary projections
(see schemas.py). A post whose author no longer resolves is a tombstone left
behind by account deletion: feed listings drop it instead of failing.

Writes that can race (comment append, like toggle) are issued as single
INSERT/DELETE statements against the child tables, never as a read-modify-
write of the loaded post.
"""
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.exceptions import PostNotFound, ValidationFailed
from engagement.models import Comment, Post, PostLike
from engagement.schemas import PostDetailResponse, PostResponse

logger = logging.getLogger(__name__)


def _require_content(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise ValidationFailed("content is required")
    return content


class PostRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def commit(self) -> None:
        """Commit the request's unit of work (posts, comments, likes, notifications)."""
        await self._db.commit()

    async def _load(self, post_id: str) -> Optional[Post]:
        # populate_existing: a post already in the identity map must pick up
        # comments/likes written through Core statements in this session
        result = await self._db.execute(
            select(Post)
            .where(Post.post_id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _exists(self, post_id: str) -> bool:
        found = await self._db.scalar(select(Post.post_id).where(Post.post_id == post_id))
        return found is not None

    async def list_all(self, author_ids: Optional[Iterable[str]] = None) -> list[PostResponse]:
        """Newest-first posts, optionally restricted to a set of authors."""
        stmt = select(Post).order_by(Post.created_at.desc(), Post.post_id.desc())
        if author_ids is not None:
            stmt = stmt.where(Post.author_id.in_(list(author_ids)))
        rows = await self._db.execute(stmt)
        posts = rows.scalars().all()

        visible = [PostResponse.model_validate(p) for p in posts if p.author is not None]
        if len(visible) != len(posts):
            logger.debug("Dropped %d posts with unresolved authors", len(posts) - len(visible))
        return visible

    async def get_by_id(self, post_id: str) -> PostDetailResponse:
        post = await self._load(post_id)
        if post is None:
            raise PostNotFound(post_id)
        return PostDetailResponse.model_validate(post)

    async def create(
        self,
        author_id: str,
        content: Optional[str],
        image: Optional[str] = None,
        sentiment: Optional[dict] = None,
    ) -> PostResponse:
        post_id = str(uuid.uuid4())
        await self._db.execute(
            insert(Post).values(
                post_id=post_id,
                author_id=author_id,
                content=_require_content(content),
                image=image,
                sentiment=sentiment,
            )
        )
        post = await self._load(post_id)
        return PostResponse.model_validate(post)

    async def delete_by_id(self, post_id: str) -> None:
        await self._db.execute(delete(Comment).where(Comment.post_id == post_id))
        await self._db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        result = await self._db.execute(delete(Post).where(Post.post_id == post_id))
        if result.rowcount == 0:
            raise PostNotFound(post_id)

    async def append_comment(
        self, post_id: str, user_id: str, content: Optional[str]
    ) -> PostDetailResponse:
        content = _require_content(content)
        if not await self._exists(post_id):
            raise PostNotFound(post_id)
        await self._db.execute(
            insert(Comment).values(post_id=post_id, user_id=user_id, content=content)
        )
        return await self.get_by_id(post_id)

    async def _remove_like(self, post_id: str, user_id: str) -> bool:
        result = await self._db.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        return result.rowcount > 0

    async def _add_like(self, post_id: str, user_id: str) -> bool:
        """Insert the like unless it already exists; True if a row was added."""
        dialect = self._db.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite_insert(PostLike).values(post_id=post_id, user_id=user_id)
            stmt = stmt.on_conflict_do_nothing()
        else:
            stmt = mysql_insert(PostLike).values(post_id=post_id, user_id=user_id)
            stmt = stmt.prefix_with("IGNORE")
        result = await self._db.execute(stmt)
        return result.rowcount > 0

    async def toggle_like(self, post_id: str, user_id: str) -> tuple[PostResponse, bool]:
        """
        Flip `user_id`'s membership in the post's likes.

        Returns the updated post and True if this call added a like, False if
        it removed one. Neither statement fails on a duplicate: when a
        concurrent toggle adds the like between our DELETE and INSERT, this
        toggle removes it again, so two simultaneous toggles cancel out.
        """
        if not await self._exists(post_id):
            raise PostNotFound(post_id)
        if await self._remove_like(post_id, user_id):
            liked = False
        elif await self._add_like(post_id, user_id):
            liked = True
        else:
            logger.info("Concurrent like on post %s by %s, undoing it", post_id, user_id)
            await self._remove_like(post_id, user_id)
            liked = False
        post = await self._load(post_id)
        return PostResponse.model_validate(post), liked
