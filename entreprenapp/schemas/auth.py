"""
Authentication and profile schemas.
"""
import re
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from entreprenapp.models.base import MediaFile
from entreprenapp.models.user import ROLE_ALIASES, Gender, UserRole
from entreprenapp.schemas.base import BaseSchema

PASSWORD_MIN_LENGTH = 4
PASSWORD_SPECIALS = "!@#$%^&*"


def check_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Le mot de passe doit contenir au moins {PASSWORD_MIN_LENGTH} caractères")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Le mot de passe doit contenir au moins une majuscule")
    if not re.search(r"[0-9]", value):
        raise ValueError("Le mot de passe doit contenir au moins un chiffre")
    if not any(c in PASSWORD_SPECIALS for c in value):
        raise ValueError("Le mot de passe doit contenir au moins un caractère spécial (!@#$%^&*)")
    return value


# =============================================================================
# Registration and login
# =============================================================================
class RegisterRequest(BaseSchema):
    """Registration payload; role-specific fields are checked per role."""
    username: str = Field(..., min_length=3, max_length=50)
    fullname: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str
    role: str
    location: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[datetime] = None
    bio: Optional[str] = Field(None, max_length=500)

    sector: Optional[str] = None
    professional_email: Optional[EmailStr] = None
    founded_year: Optional[int] = Field(None, ge=1800, le=2100)
    verification_document: Optional[MediaFile] = None
    university_name: Optional[str] = None
    official_university_email: Optional[EmailStr] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        role = v.strip().lower()
        role = ROLE_ALIASES.get(role, role)
        if role not in {r.value for r in UserRole} or role in ("admin", "super_admin"):
            raise ValueError("Invalid role")
        return role

    @model_validator(mode="after")
    def check_role_fields(self) -> "RegisterRequest":
        if self.role == UserRole.ENTREPRENEUR.value and not self.sector:
            raise ValueError("Sector is required for entrepreneurs")
        if self.role == UserRole.UNIVERSITY.value and not (
            self.university_name and self.official_university_email
        ):
            raise ValueError("University name and official email are required")
        return self


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class VerifyEmailRequest(BaseSchema):
    verification_code: str = Field(..., min_length=6, max_length=6)


class EmailRequest(BaseSchema):
    """Body for resend-code and forgot-password."""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class ResetPasswordRequest(BaseSchema):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


# =============================================================================
# Profile
# =============================================================================
class ProfileUpdate(BaseSchema):
    """Editable profile fields; only the ones sent are changed."""
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    fullname: Optional[str] = Field(None, min_length=3, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[datetime] = None
    profile_image: Optional[MediaFile] = None
    cover_image: Optional[MediaFile] = None
    sector: Optional[str] = None
