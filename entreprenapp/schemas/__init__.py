"""
Pydantic Schemas.

Export all schemas for easy imports:
    from entreprenapp.schemas import RegisterRequest, PostCreate
"""
from entreprenapp.schemas.auth import (
    EmailRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from entreprenapp.schemas.base import BaseSchema, ErrorResponse, paginate, success_response
from entreprenapp.schemas.event import EventCreate, EventRegistrationRequest, EventUpdate
from entreprenapp.schemas.friend import FriendInvitation, FriendResponse, SuggestionRequest
from entreprenapp.schemas.message import MessageCreate, MessageUpdate
from entreprenapp.schemas.post import CommentCreate, CommentUpdate, PostCreate, PostUpdate
from entreprenapp.schemas.project import (
    ChallengeCreate,
    ChallengeUpdate,
    InvestmentRequest,
    ProjectCreate,
    ProjectUpdate,
)

__all__ = [
    # Base
    "BaseSchema",
    "ErrorResponse",
    "paginate",
    "success_response",
    # Auth
    "EmailRequest",
    "LoginRequest",
    "ProfileUpdate",
    "RegisterRequest",
    "ResetPasswordRequest",
    "VerifyEmailRequest",
    # Social
    "CommentCreate",
    "CommentUpdate",
    "FriendInvitation",
    "FriendResponse",
    "MessageCreate",
    "MessageUpdate",
    "PostCreate",
    "PostUpdate",
    "SuggestionRequest",
    # Events, projects, challenges
    "ChallengeCreate",
    "ChallengeUpdate",
    "EventCreate",
    "EventRegistrationRequest",
    "EventUpdate",
    "InvestmentRequest",
    "ProjectCreate",
    "ProjectUpdate",
]
