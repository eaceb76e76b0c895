"""
Direct message schemas.
"""
from typing import Optional

from pydantic import Field, model_validator

from entreprenapp.schemas.base import BaseSchema


class MessageCreate(BaseSchema):
    text: Optional[str] = Field(None, max_length=5000)
    image: Optional[str] = None

    @model_validator(mode="after")
    def require_text_or_image(self) -> "MessageCreate":
        if not self.text and not self.image:
            raise ValueError("Message text or image is required")
        return self


class MessageUpdate(BaseSchema):
    text: str = Field(..., min_length=1, max_length=5000)
