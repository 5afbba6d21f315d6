"""
Post endpoints (all require an authenticated actor):
  GET    /posts               — public feed
  GET    /posts/explore       — personalised explore feed
  GET    /posts/network       — posts by the actor's connections + the actor
  GET    /posts/{id}          — single post, detail projection
  POST   /posts               — create a post (optional image)
  DELETE /posts/{id}          — delete own post
  POST   /posts/{id}/comments — comment on a post
  POST   /posts/{id}/like     — toggle like
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.auth import Actor, get_current_actor
from engagement.clients.email_client import email_dispatcher
from engagement.clients.minio_client import get_asset_store
from engagement.clients.sentiment_client import sentiment_client
from engagement.config import settings
from engagement.database import get_db
from engagement.notifications import NotificationWriter
from engagement.repository import PostRepository
from engagement.schemas import (
    CommentCreate,
    MessageResponse,
    PostCreate,
    PostDetailResponse,
    PostResponse,
)
from engagement.service import PostEngagementService

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_engagement_service(db: AsyncSession = Depends(get_db)) -> PostEngagementService:
    """Build the per-request service around the request's DB session."""
    return PostEngagementService(
        posts=PostRepository(db),
        notifications=NotificationWriter(db),
        sentiment=sentiment_client,
        assets=get_asset_store(),
        mailer=email_dispatcher,
        client_url=settings.client_url,
    )


@router.get("", response_model=list[PostResponse])
async def list_public_posts(
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.list_public_feed()


@router.get("/explore", response_model=list[PostResponse])
async def list_explore_posts(
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.list_explore_feed(actor)


@router.get("/network", response_model=list[PostResponse])
async def list_network_posts(
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.list_network_feed(actor)


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.get_post(post_id)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.create_post(actor, body.content, body.image)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.delete_post(actor, post_id)


@router.post("/{post_id}/comments", response_model=PostDetailResponse)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.create_comment(actor, post_id, body.content)


@router.post("/{post_id}/like", response_model=PostResponse)
async def toggle_like(
    post_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PostEngagementService = Depends(get_engagement_service),
):
    return await service.toggle_like(actor, post_id)
