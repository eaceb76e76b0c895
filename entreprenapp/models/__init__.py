"""
MongoDB Document Models.

Export all models from this package for easy imports:
    from entreprenapp.models import UserDocument, PostDocument
"""
from entreprenapp.models.base import BaseDocument, MediaFile, parse_object_id, to_public
from entreprenapp.models.challenge import ChallengeDocument
from entreprenapp.models.event import EventDocument, EventStatus
from entreprenapp.models.friend import FriendRequestDocument, FriendRequestStatus
from entreprenapp.models.message import MessageDocument
from entreprenapp.models.notification import (
    NotificationDocument,
    NotificationType,
    RelatedItemType,
)
from entreprenapp.models.post import CommentDocument, PostDocument, PostVisibility
from entreprenapp.models.project import ProjectDocument, ProjectStatus
from entreprenapp.models.user import UserDocument, UserRole

__all__ = [
    "BaseDocument",
    "MediaFile",
    "parse_object_id",
    "to_public",
    "ChallengeDocument",
    "EventDocument",
    "EventStatus",
    "FriendRequestDocument",
    "FriendRequestStatus",
    "MessageDocument",
    "NotificationDocument",
    "NotificationType",
    "RelatedItemType",
    "CommentDocument",
    "PostDocument",
    "PostVisibility",
    "ProjectDocument",
    "ProjectStatus",
    "UserDocument",
    "UserRole",
]
