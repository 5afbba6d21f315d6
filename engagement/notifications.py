"""Notification records for post authors.

Writes happen inside the request's transaction: if a notification can't be
persisted, the engagement that triggered it fails with it.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models import Notification, NotificationType
from engagement.telemetry import NOTIFICATIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)


class NotificationWriter:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def write(
        self,
        recipient_id: str,
        type: NotificationType,
        related_user_id: str,
        related_post_id: str,
    ) -> Notification:
        if recipient_id == related_user_id:
            raise ValueError("users are never notified about their own actions")

        notification = Notification(
            recipient_id=recipient_id,
            type=NotificationType(type).value,
            related_user_id=related_user_id,
            related_post_id=related_post_id,
        )
        self._db.add(notification)
        await self._db.flush()

        NOTIFICATIONS_CREATED_TOTAL.labels(type=notification.type).inc()
        logger.info(
            "Notification %s: %s → %s on post %s",
            notification.type, related_user_id, recipient_id, related_post_id,
        )
        return notification
