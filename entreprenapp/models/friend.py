"""
Friend Request Document Model for MongoDB.
"""
from enum import Enum

from bson import ObjectId

from entreprenapp.models.base import BaseDocument


class FriendRequestStatus(str, Enum):
    """pending -> accepted | rejected, never back."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequestDocument(BaseDocument):
    """
    Collection: friend_requests
    """

    __collection__ = "friend_requests"

    sender: ObjectId
    receiver: ObjectId
    status: FriendRequestStatus = FriendRequestStatus.PENDING
