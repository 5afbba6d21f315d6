"""
SQLAlchemy ORM models.

Tables:
  users          — user profiles (owned by the auth service, read-only here)
  connections    — professional network edges (user → connection)
  posts          — post aggregate root; media bytes live in the asset store
  post_comments  — ordered comment sequence embedded in a post
  post_likes     — set of users who liked a post
  notifications  — engagement notifications for post authors
"""
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engagement.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # Naive UTC with microseconds: MySQL and SQLite both drop tzinfo on write
    return datetime.now(timezone.utc).replace(tzinfo=None)


class NotificationType(str, enum.Enum):
    COMMENT = "comment"
    LIKE = "like"


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    avatar: Mapped[Optional[str]] = mapped_column(String(500))
    headline: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class Connection(Base):
    __tablename__ = "connections"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    connection_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class Post(Base):
    __tablename__ = "posts"

    post_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # No FK: author accounts may be deleted, leaving tombstoned posts behind
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Public asset URL
    image: Mapped[Optional[str]] = mapped_column(String(500))
    sentiment: Mapped[Optional[dict]] = mapped_column(JSON(none_as_null=True))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    author = relationship(
        "User",
        primaryjoin="foreign(Post.author_id) == User.user_id",
        lazy="joined",
        viewonly=True,
    )
    comments = relationship(
        "Comment",
        order_by="Comment.comment_id",
        lazy="selectin",
        viewonly=True,
    )
    like_rows = relationship(
        "PostLike",
        order_by="PostLike.created_at",
        lazy="selectin",
        viewonly=True,
    )

    @property
    def likes(self) -> list[str]:
        return [row.user_id for row in self.like_rows]

    __table_args__ = (
        Index("idx_posts_author", "author_id"),
        Index("idx_posts_created", "created_at"),
    )


class Comment(Base):
    __tablename__ = "post_comments"

    # Autoincrement sequence doubles as the append order within a post
    comment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    user = relationship(
        "User",
        primaryjoin="foreign(Comment.user_id) == User.user_id",
        lazy="joined",
        viewonly=True,
    )

    __table_args__ = (Index("idx_comments_post", "post_id"),)


class PostLike(Base):
    __tablename__ = "post_likes"

    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    notification_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    related_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # Plain column: notifications outlive the post they point at
    related_post_id: Mapped[str] = mapped_column(String(36), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("idx_notifications_recipient", "recipient_id"),)
