"""
Notification Document Model for MongoDB.

Notifications expire 30 days after creation; a TTL index on
``expires_at`` lets MongoDB purge them.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import Field

from entreprenapp.models.base import BaseDocument, utcnow

NOTIFICATION_TTL = timedelta(days=30)


class NotificationType(str, Enum):
    MESSAGE = "message"
    POST = "post"
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPT = "friend_accept"
    EVENT = "event"
    LIKE = "like"
    COMMENT = "comment"


class RelatedItemType(str, Enum):
    POST = "Post"
    MESSAGE = "Message"
    USER = "User"
    EVENT = "Event"
    CHALLENGE = "Challenge"


def _default_expiry() -> datetime:
    return utcnow() + NOTIFICATION_TTL


class NotificationDocument(BaseDocument):
    """
    Collection: notifications

    Indexes:
        - (recipient, created_at desc)
        - (recipient, read)
        - expires_at (TTL)
    """

    __collection__ = "notifications"

    recipient: ObjectId
    actor: Optional[ObjectId] = None
    type: NotificationType
    title: str
    content: str
    related_item: Optional[ObjectId] = None
    related_item_type: Optional[RelatedItemType] = None
    read: bool = False
    read_at: Optional[datetime] = None
    expires_at: datetime = Field(default_factory=_default_expiry)
