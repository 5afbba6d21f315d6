"""
Actor resolution.

Authentication lives in the upstream auth gateway, which forwards the
authenticated user's id in the X-User-Id header. This module turns that id
into the Actor the engagement workflows need: identity, display name and
direct connections (for the network feed).
"""
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.database import get_db
from engagement.exceptions import Unauthorized
from engagement.models import Connection, User


@dataclass
class Actor:
    user_id: str
    name: str
    email: Optional[str] = None
    connections: list[str] = field(default_factory=list)


async def load_actor(db: AsyncSession, user_id: str) -> Actor:
    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized(f"unknown user {user_id}")
    rows = await db.execute(
        select(Connection.connection_id).where(Connection.user_id == user_id)
    )
    return Actor(
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        connections=[r[0] for r in rows.all()],
    )


async def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """FastAPI dependency: the authenticated actor for this request."""
    if not x_user_id:
        raise Unauthorized("missing X-User-Id header")
    return await load_actor(db, x_user_id)
