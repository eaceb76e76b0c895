"""
Notification service.

Records a Notification document, then publishes ``new_notification`` to the
recipient through the real-time publisher. The stored record is the source
of truth; the push is best-effort. Failures are logged and never propagate
to the route handler that triggered them.
"""
import logging
from typing import Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from entreprenapp.models.base import same_id
from entreprenapp.models.notification import (
    NotificationDocument,
    NotificationType,
    RelatedItemType,
)
from entreprenapp.models.user import PUBLIC_USER_PROJECTION
from entreprenapp.realtime.publisher import OutboundEvent, RealtimePublisher

logger = logging.getLogger(__name__)

NEW_NOTIFICATION_EVENT = "new_notification"


def _excerpt(text: Optional[str], fallback: str, length: int = 100) -> str:
    return text[:length] if text else fallback


class NotificationService:
    """Create notifications and hand them to the real-time publisher."""

    def __init__(self, db: AsyncIOMotorDatabase, publisher: RealtimePublisher):
        self.db = db
        self.publisher = publisher

    async def send(
        self,
        recipient: ObjectId,
        actor: Optional[ObjectId],
        type: NotificationType,
        title: str,
        content: str,
        related_item: Optional[ObjectId] = None,
        related_item_type: Optional[RelatedItemType] = None,
    ) -> Optional[dict]:
        """
        Persist and push one notification.

        Returns the stored document, or None when skipped (self-notification)
        or when the write failed.
        """
        if actor is not None and same_id(actor, recipient):
            return None

        try:
            notification = await NotificationDocument(
                recipient=ObjectId(str(recipient)),
                actor=ObjectId(str(actor)) if actor is not None else None,
                type=type,
                title=title,
                content=content,
                related_item=related_item,
                related_item_type=related_item_type,
            ).insert(self.db)
        except Exception:
            logger.exception(f"Failed to record '{type}' notification for user {recipient}")
            return None

        payload = dict(notification)
        if actor is not None:
            try:
                payload["actor"] = await self.db.users.find_one(
                    {"_id": notification["actor"]}, PUBLIC_USER_PROJECTION
                ) or notification["actor"]
            except Exception:
                logger.warning(f"Could not load actor {actor} for notification push", exc_info=True)
        await self.publisher.publish(
            OutboundEvent(str(recipient), NEW_NOTIFICATION_EVENT, payload)
        )
        return notification

    async def send_many(self, recipients: Iterable[ObjectId], actor: ObjectId, **fields) -> List[dict]:
        created = []
        for recipient in recipients:
            notification = await self.send(recipient, actor, **fields)
            if notification:
                created.append(notification)
        return created

    # =========================================================================
    # Domain helpers
    # =========================================================================
    async def notify_message_received(self, sender_id, receiver_id, text: Optional[str]):
        return await self.send(
            receiver_id,
            sender_id,
            type=NotificationType.MESSAGE,
            title="Nouveau message",
            content=_excerpt(text, "Vous avez reçu un nouveau message"),
            related_item=sender_id,
            related_item_type=RelatedItemType.USER,
        )

    async def notify_new_post(self, author_id, follower_ids, post_id, content: Optional[str]):
        return await self.send_many(
            follower_ids,
            author_id,
            type=NotificationType.POST,
            title="Nouveau post",
            content=_excerpt(content, "Un nouvel utilisateur a publié un post"),
            related_item=post_id,
            related_item_type=RelatedItemType.POST,
        )

    async def notify_friend_request(self, sender_id, receiver_id):
        return await self.send(
            receiver_id,
            sender_id,
            type=NotificationType.FRIEND_REQUEST,
            title="Nouvelle demande d'ami",
            content="Quelqu'un vous a envoyé une demande d'ami",
            related_item=sender_id,
            related_item_type=RelatedItemType.USER,
        )

    async def notify_friend_accepted(self, accepter_id, requester_id):
        return await self.send(
            requester_id,
            accepter_id,
            type=NotificationType.FRIEND_ACCEPT,
            title="Demande d'ami acceptée",
            content="Votre demande d'ami a été acceptée",
            related_item=accepter_id,
            related_item_type=RelatedItemType.USER,
        )

    async def notify_new_event(self, organizer_id, user_ids, event_id, title: str):
        return await self.send_many(
            user_ids,
            organizer_id,
            type=NotificationType.EVENT,
            title="Nouvel événement",
            content=f'Un nouvel événement "{title}" a été créé',
            related_item=event_id,
            related_item_type=RelatedItemType.EVENT,
        )

    async def notify_post_liked(self, liker_id, author_id, post_id):
        return await self.send(
            author_id,
            liker_id,
            type=NotificationType.LIKE,
            title="Votre post a été aimé",
            content="Quelqu'un a aimé votre post",
            related_item=post_id,
            related_item_type=RelatedItemType.POST,
        )

    async def notify_post_commented(self, commenter_id, author_id, post_id, text: Optional[str]):
        return await self.send(
            author_id,
            commenter_id,
            type=NotificationType.COMMENT,
            title="Nouveau commentaire",
            content=_excerpt(text, "Quelqu'un a commenté votre post"),
            related_item=post_id,
            related_item_type=RelatedItemType.POST,
        )
