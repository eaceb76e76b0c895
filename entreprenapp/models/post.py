"""
Post and Comment Document Models for MongoDB.
"""
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import Field

from entreprenapp.models.base import BaseDocument, MediaFile


class PostVisibility(str, Enum):
    """Who may read a post."""
    PUBLIC = "public"
    PRIVATE = "private"
    CONNECTIONS = "connections"


class PostDocument(BaseDocument):
    """
    Post document.

    Collection: posts
    """

    __collection__ = "posts"

    author: ObjectId
    content: str = ""
    visibility: PostVisibility = PostVisibility.PUBLIC
    media: List[MediaFile] = Field(default_factory=list)
    likes: List[ObjectId] = Field(default_factory=list)
    comments: List[ObjectId] = Field(default_factory=list)
    bookmarked_by: List[ObjectId] = Field(default_factory=list)
    shares_count: int = 0


class CommentDocument(BaseDocument):
    """
    Comment document. Replies are comments with ``parent_comment`` set.

    Collection: comments
    """

    __collection__ = "comments"

    author: ObjectId
    post: ObjectId
    content: str
    parent_comment: Optional[ObjectId] = None
    replies: List[ObjectId] = Field(default_factory=list)
    likes: List[ObjectId] = Field(default_factory=list)
    likes_count: int = 0
