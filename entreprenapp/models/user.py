"""
User Document Model for MongoDB.

Represents user accounts in the users collection.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, Field

from entreprenapp.models.base import BaseDocument, MediaFile


class UserRole(str, Enum):
    """Account roles."""
    ENTREPRENEUR = "entrepreneur"
    INVESTOR = "investor"
    STARTUP = "startup"
    ORGANISATION = "organisation"
    UNIVERSITY = "university"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer-not-to-say"


ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)

# Spellings accepted at registration
ROLE_ALIASES = {
    "investisseur": UserRole.INVESTOR.value,
    "organization": UserRole.ORGANISATION.value,
    "orgnisation": UserRole.ORGANISATION.value,
    "universite": UserRole.UNIVERSITY.value,
    "université": UserRole.UNIVERSITY.value,
}

# Roles that carry a professional profile, keyed to the document field
PROFESSIONAL_PROFILE_FIELDS = {
    UserRole.INVESTOR.value: "investor_profile",
    UserRole.STARTUP.value: "startup_profile",
    UserRole.ORGANISATION.value: "organization_profile",
}

# Fields that never leave the server
PRIVATE_FIELDS = (
    "password",
    "verification_code",
    "verification_code_expires_at",
    "reset_password_token",
    "reset_password_expires_at",
)

# Projection used when embedding a user in another resource
PUBLIC_USER_PROJECTION = {
    "username": 1,
    "fullname": 1,
    "email": 1,
    "role": 1,
    "profile_image": 1,
}


class EntrepreneurProfile(BaseModel):
    sector: Optional[str] = None


class ProfessionalProfile(BaseModel):
    professional_email: Optional[str] = None
    sector: Optional[str] = None
    founded_year: Optional[int] = None
    verification_document: Optional[MediaFile] = None


class UniversityProfile(BaseModel):
    university_name: Optional[str] = None
    official_email: Optional[str] = None


class UserDocument(BaseDocument):
    """
    User document for MongoDB.

    Collection: users

    Indexes:
        - email (unique)
        - username (unique)
        - deleted_at
    """

    __collection__ = "users"

    username: str
    email: str
    password: str
    fullname: str
    bio: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[datetime] = None
    location: Optional[str] = None
    profile_image: Optional[MediaFile] = None
    cover_image: Optional[MediaFile] = None
    role: UserRole = UserRole.ENTREPRENEUR

    entrepreneur_profile: Optional[EntrepreneurProfile] = None
    investor_profile: Optional[ProfessionalProfile] = None
    startup_profile: Optional[ProfessionalProfile] = None
    organization_profile: Optional[ProfessionalProfile] = None
    university_profile: Optional[UniversityProfile] = None

    is_verified: bool = False
    verification_code: Optional[str] = None
    verification_code_expires_at: Optional[datetime] = None
    reset_password_token: Optional[str] = None
    reset_password_expires_at: Optional[datetime] = None

    friends: List[ObjectId] = Field(default_factory=list)
    achievements: List[dict] = Field(default_factory=list)

    # Soft delete
    deleted_at: Optional[datetime] = None


def active_user_filter(**criteria) -> dict:
    """Query filter matching users that have not been soft-deleted."""
    return {**criteria, "deleted_at": None}


def public_user(user: dict) -> dict:
    """Strip credentials and one-time secrets from a user document."""
    return {key: value for key, value in user.items() if key not in PRIVATE_FIELDS}
