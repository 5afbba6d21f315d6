"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Read projections come in two widths: the feed width (lightweight author
and commenter summaries) and the detail width used by single-post views.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────── User projections ────────────────────────────

class AuthorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    username: str
    avatar: Optional[str] = None
    headline: Optional[str] = None


class AuthorDetail(AuthorSummary):
    email: Optional[str] = None


class CommenterSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    avatar: Optional[str] = None


class CommenterDetail(CommenterSummary):
    username: str
    headline: Optional[str] = None


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: Optional[str] = None


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    comment_id: int
    user_id: str
    # None when the commenter's account no longer resolves
    user: Optional[CommenterSummary] = None
    content: str
    created_at: datetime


class CommentDetailResponse(CommentResponse):
    user: Optional[CommenterDetail] = None


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: Optional[str] = None
    # data:<mime>;base64,<...> URL or bare base64; uploaded to the asset store
    image: Optional[str] = None


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    post_id: str
    author_id: str
    author: Optional[AuthorSummary] = None
    content: str
    image: Optional[str] = None
    sentiment: Optional[dict] = None
    likes: list[str] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    created_at: datetime


class PostDetailResponse(PostResponse):
    author: Optional[AuthorDetail] = None
    comments: list[CommentDetailResponse] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str
