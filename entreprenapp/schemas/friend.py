"""
Friend request and suggestion schemas.
"""
from typing import Literal

from entreprenapp.schemas.base import BaseSchema


class FriendInvitation(BaseSchema):
    receiver_id: str


class FriendResponse(BaseSchema):
    action: Literal["accept", "reject"]


class SuggestionRequest(BaseSchema):
    target_user_id: str
