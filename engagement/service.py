"""
Post engagement workflows.

  Create post    — sentiment (best-effort) → image upload (fatal) → persist + commit
  Delete post    — load → author check → asset delete (best-effort) → delete
  Create comment — append → notification → commit → email to author (unless self)
  Toggle like    — load → atomic toggle → notification on like (unless self)
  Feeds          — public / explore / network listings, newest first

Enrichment happens before the post is written; notifications after. Nothing
here reads global settings: every collaborator and URL is handed in by the
router at construction time.
"""
import logging
from typing import Callable, Optional

from opentelemetry import trace

from engagement.auth import Actor
from engagement.clients.email_client import EmailDispatcher
from engagement.clients.minio_client import AssetStore
from engagement.clients.sentiment_client import SentimentClient
from engagement.exceptions import Forbidden
from engagement.models import NotificationType
from engagement.notifications import NotificationWriter
from engagement.repository import PostRepository
from engagement.schemas import MessageResponse, PostDetailResponse, PostResponse
from engagement.telemetry import (
    COMMENTS_CREATED_TOTAL,
    FEED_LATENCY,
    LIKES_TOGGLED_TOTAL,
    POSTS_CREATED_TOTAL,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

FeedRanker = Callable[[Actor, list[PostResponse]], list[PostResponse]]


def chronological(actor: Actor, posts: list[PostResponse]) -> list[PostResponse]:
    """Default explore ranking: keep the repository's newest-first order."""
    return posts


class PostEngagementService:
    def __init__(
        self,
        posts: PostRepository,
        notifications: NotificationWriter,
        sentiment: SentimentClient,
        assets: AssetStore,
        mailer: EmailDispatcher,
        client_url: str,
        explore_ranker: Optional[FeedRanker] = None,
    ) -> None:
        self._posts = posts
        self._notifications = notifications
        self._sentiment = sentiment
        self._assets = assets
        self._mailer = mailer
        self._client_url = client_url.rstrip("/")
        self._explore_ranker = explore_ranker or chronological

    def post_url(self, post_id: str) -> str:
        return f"{self._client_url}/post/{post_id}"

    # ── Feeds ──────────────────────────────────────────────────────────────

    async def list_public_feed(self) -> list[PostResponse]:
        with tracer.start_as_current_span("list_public_feed"):
            with FEED_LATENCY.labels(feed="public").time():
                return await self._posts.list_all()

    async def list_explore_feed(self, actor: Actor) -> list[PostResponse]:
        with tracer.start_as_current_span("list_explore_feed"):
            with FEED_LATENCY.labels(feed="explore").time():
                posts = self._explore_ranker(actor, await self._posts.list_all())
            logger.info("Explore feed for %s: %d posts", actor.user_id, len(posts))
            return posts

    async def list_network_feed(self, actor: Actor) -> list[PostResponse]:
        with tracer.start_as_current_span("list_network_feed") as span:
            # Network = direct connections plus the actor's own posts
            authors = {*actor.connections, actor.user_id}
            with FEED_LATENCY.labels(feed="network").time():
                posts = await self._posts.list_all(author_ids=authors)
            span.set_attribute("feed.authors", len(authors))
            span.set_attribute("feed.posts_returned", len(posts))
            logger.info("Network feed for %s: %d posts", actor.user_id, len(posts))
            return posts

    async def get_post(self, post_id: str) -> PostDetailResponse:
        return await self._posts.get_by_id(post_id)

    # ── Posts ──────────────────────────────────────────────────────────────

    async def create_post(
        self, actor: Actor, content: Optional[str], image: Optional[str] = None
    ) -> PostResponse:
        with tracer.start_as_current_span("create_post") as span:
            sentiment = await self._sentiment.analyze(content) if content else None

            image_url = None
            if image:
                image_url = await self._assets.upload(image)

            try:
                post = await self._posts.create(
                    author_id=actor.user_id,
                    content=content,
                    image=image_url,
                    sentiment=sentiment,
                )
                await self._posts.commit()
            except Exception:
                # Don't leave an orphaned object behind for a post that never existed
                if image_url:
                    await self._assets.delete(image_url)
                raise

            span.set_attribute("post.id", post.post_id)
            span.set_attribute("post.has_sentiment", sentiment is not None)
            POSTS_CREATED_TOTAL.inc()
            logger.info("Post created: %s by user %s", post.post_id, actor.user_id)
            return post

    async def delete_post(self, actor: Actor, post_id: str) -> MessageResponse:
        with tracer.start_as_current_span("delete_post"):
            post = await self._posts.get_by_id(post_id)

            if post.author_id != actor.user_id:
                raise Forbidden(f"user {actor.user_id} is not the author of {post_id}")

            if post.image:
                await self._assets.delete(post.image)

            await self._posts.delete_by_id(post_id)
            logger.info("Post deleted: %s by user %s", post_id, actor.user_id)
            return MessageResponse(message="Post deleted successfully")

    # ── Engagement ─────────────────────────────────────────────────────────

    async def create_comment(
        self, actor: Actor, post_id: str, content: Optional[str]
    ) -> PostDetailResponse:
        with tracer.start_as_current_span("create_comment"):
            post = await self._posts.append_comment(post_id, actor.user_id, content)
            COMMENTS_CREATED_TOTAL.inc()

            if post.author_id == actor.user_id:
                return post
            if post.author is None:
                logger.info("Author of post %s no longer exists, skipping notification", post_id)
                return post

            await self._notifications.write(
                recipient_id=post.author_id,
                type=NotificationType.COMMENT,
                related_user_id=actor.user_id,
                related_post_id=post_id,
            )
            # Only email about a comment that is durably stored
            await self._posts.commit()
            await self._mailer.send_comment_email(
                post.author.email,
                post.author.name,
                actor.name,
                self.post_url(post_id),
                content,
            )
            return post

    async def toggle_like(self, actor: Actor, post_id: str) -> PostResponse:
        with tracer.start_as_current_span("toggle_like") as span:
            post, liked = await self._posts.toggle_like(post_id, actor.user_id)
            LIKES_TOGGLED_TOTAL.labels(action="like" if liked else "unlike").inc()
            span.set_attribute("like.liked", liked)

            if liked and post.author_id != actor.user_id and post.author is not None:
                await self._notifications.write(
                    recipient_id=post.author_id,
                    type=NotificationType.LIKE,
                    related_user_id=actor.user_id,
                    related_post_id=post_id,
                )
            return post
