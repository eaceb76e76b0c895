"""
Post and comment schemas.
"""
from typing import List, Optional

from pydantic import Field, model_validator

from entreprenapp.models.base import MediaFile
from entreprenapp.models.post import PostVisibility
from entreprenapp.schemas.base import BaseSchema


class PostCreate(BaseSchema):
    content: str = Field("", max_length=5000)
    visibility: PostVisibility = PostVisibility.PUBLIC
    media: List[MediaFile] = Field(default_factory=list)

    @model_validator(mode="after")
    def require_content_or_media(self) -> "PostCreate":
        if not self.content and not self.media:
            raise ValueError("Post must have content or media")
        return self


class PostUpdate(BaseSchema):
    content: Optional[str] = Field(None, max_length=5000)
    visibility: Optional[PostVisibility] = None
    media: List[MediaFile] = Field(default_factory=list)
    media_to_delete: List[str] = Field(default_factory=list)


class CommentCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentUpdate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=2000)
