"""
Direct Message Document Model for MongoDB.
"""
from typing import Optional

from bson import ObjectId

from entreprenapp.models.base import BaseDocument


class MessageDocument(BaseDocument):
    """
    Collection: messages
    """

    __collection__ = "messages"

    sender: ObjectId
    receiver: ObjectId
    text: Optional[str] = None
    image: Optional[str] = None
    read: bool = False
    edited: bool = False
