"""
Authentication endpoints.

Sessions are carried by the ``accessToken`` / ``refreshToken`` cookies;
tokens are also returned in the login body for clients that cannot use
cookies and fall back to the bearer header.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from jose import ExpiredSignatureError, JWTError
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from entreprenapp.api.deps import get_email_service, get_presence, get_publisher
from entreprenapp.config import settings
from entreprenapp.core.auth import get_current_user, get_current_user_optional
from entreprenapp.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from entreprenapp.core.ownership import DELETE_FORBIDDEN, collection_loader, require_ownership
from entreprenapp.core.security import (
    REFRESH_COOKIE,
    REFRESH_TOKEN,
    clear_session,
    create_access_token,
    decode_token,
    generate_reset_token,
    generate_verification_code,
    hash_password,
    hash_reset_token,
    issue_session,
    set_access_cookie,
    user_claims,
    verify_password,
)
from entreprenapp.db.mongodb import get_database
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.user import (
    PROFESSIONAL_PROFILE_FIELDS,
    EntrepreneurProfile,
    ProfessionalProfile,
    UniversityProfile,
    UserDocument,
    UserRole,
    active_user_filter,
    public_user,
)
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import RealtimePublisher
from entreprenapp.schemas.auth import (
    EmailRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from entreprenapp.schemas.base import success_response
from entreprenapp.services.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _build_user(data: RegisterRequest, code: str) -> UserDocument:
    user = UserDocument(
        username=data.username,
        fullname=data.fullname,
        email=data.email,
        password=hash_password(data.password),
        role=data.role,
        location=data.location,
        gender=data.gender,
        dob=data.dob,
        bio=data.bio,
        verification_code=code,
        verification_code_expires_at=utcnow() + timedelta(
            minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES
        ),
    )

    if data.role == UserRole.ENTREPRENEUR.value:
        user.entrepreneur_profile = EntrepreneurProfile(sector=data.sector)
    elif data.role == UserRole.UNIVERSITY.value:
        user.university_profile = UniversityProfile(
            university_name=data.university_name,
            official_email=data.official_university_email,
        )
    elif data.role in PROFESSIONAL_PROFILE_FIELDS:
        setattr(user, PROFESSIONAL_PROFILE_FIELDS[data.role], ProfessionalProfile(
            professional_email=data.professional_email,
            sector=data.sector,
            founded_year=data.founded_year,
            verification_document=data.verification_document,
        ))
    return user


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
)
async def register(
    data: RegisterRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
    email_service: EmailService = Depends(get_email_service),
):
    """Create an unverified account and email a 6-digit verification code."""
    if await db.users.find_one({"email": data.email}):
        raise BadRequestException("This email is already taken")
    if await db.users.find_one({"username": data.username}):
        raise BadRequestException("This username is already taken")

    code = generate_verification_code()
    try:
        user = await _build_user(data, code).insert(db)
    except DuplicateKeyError:
        raise BadRequestException("This email or username is already taken")

    await email_service.send_verification_code(user["email"], user["username"], code)
    logger.info(f"User registered: {user['email']} ({user['role']})")

    profile = public_user(user)
    return success_response(
        profile,
        "User registered successfully. Check your email for the verification code.",
        user=profile,
    )


@router.post("/verify", summary="Verify email with the emailed code")
async def verify_email(
    data: VerifyEmailRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
    email_service: EmailService = Depends(get_email_service),
):
    user = await db.users.find_one_and_update(
        active_user_filter(
            verification_code=data.verification_code,
            verification_code_expires_at={"$gt": utcnow()},
        ),
        {
            "$set": {
                "is_verified": True,
                "verification_code": None,
                "verification_code_expires_at": None,
                "updated_at": utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise BadRequestException("Invalid or expired verification code")

    tokens = issue_session(response, user)
    await email_service.send_welcome(user["email"], user["username"])

    profile = public_user(user)
    return success_response(profile, "Email verified successfully", user=profile, tokens=tokens)


@router.post("/resend-code", summary="Send a new verification code")
async def resend_code(
    data: EmailRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
    email_service: EmailService = Depends(get_email_service),
):
    user = await db.users.find_one(active_user_filter(email=data.email))
    if not user:
        raise NotFoundException("User not found")
    if user.get("is_verified"):
        raise BadRequestException("Account already verified")

    code = generate_verification_code()
    await db.users.update_one(
        {"_id": user["_id"]},
        {
            "$set": {
                "verification_code": code,
                "verification_code_expires_at": utcnow() + timedelta(
                    minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES
                ),
                "updated_at": utcnow(),
            }
        },
    )
    await email_service.send_verification_code(user["email"], user["username"], code)
    return success_response(message="A new verification code has been sent")


@router.post("/login", summary="User login")
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Check credentials and set the session cookies."""
    user = await db.users.find_one(active_user_filter(email=data.email))
    if not user or not verify_password(data.password, user["password"]):
        raise NotFoundException("Invalid credentials")

    if not user.get("is_verified"):
        raise BadRequestException("Account not activated")

    tokens = issue_session(response, user)
    logger.info(f"User logged in: {user['email']}")

    profile = public_user(user)
    return success_response(profile, f"Welcome {user['username']}", user=profile, tokens=tokens)


@router.post("/logout", summary="Clear the session")
async def logout(
    response: Response,
    current_user: Optional[dict] = Depends(get_current_user_optional),
    presence: PresenceRegistry = Depends(get_presence),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    clear_session(response)

    if current_user:
        user_id = str(current_user["_id"])
        went_offline = None
        for conn_id in presence.lookup(user_id):
            went_offline = presence.disconnect(conn_id) or went_offline
        if went_offline:
            await publisher.announce_offline(went_offline)

    return success_response(message="Logged out successfully")


@router.post("/forgot-password", summary="Request a password reset link")
async def forgot_password(
    data: EmailRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
    email_service: EmailService = Depends(get_email_service),
):
    """Always answers the same way so account existence is not revealed."""
    extra = {}
    user = await db.users.find_one(active_user_filter(email=data.email))
    if user:
        raw_token, digest = generate_reset_token()
        await db.users.update_one(
            {"_id": user["_id"]},
            {
                "$set": {
                    "reset_password_token": digest,
                    "reset_password_expires_at": utcnow() + timedelta(
                        minutes=settings.RESET_TOKEN_EXPIRE_MINUTES
                    ),
                    "updated_at": utcnow(),
                }
            },
        )
        await email_service.send_password_reset(user["email"], raw_token)
        if settings.is_development:
            extra["reset_token"] = raw_token

    return success_response(
        message="If an account exists for this email, a reset link has been sent",
        **extra,
    )


@router.post("/reset-password/{token}", summary="Reset password with a reset token")
async def reset_password(
    token: str,
    data: ResetPasswordRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
    email_service: EmailService = Depends(get_email_service),
):
    user = await db.users.find_one(active_user_filter(
        reset_password_token=hash_reset_token(token),
        reset_password_expires_at={"$gt": utcnow()},
    ))
    if not user:
        raise BadRequestException("Invalid or expired reset token")

    if verify_password(data.password, user["password"]):
        raise BadRequestException("New password must be different from the current password")

    await db.users.update_one(
        {"_id": user["_id"]},
        {
            "$set": {
                "password": hash_password(data.password),
                "reset_password_token": None,
                "reset_password_expires_at": None,
                "updated_at": utcnow(),
            }
        },
    )
    await email_service.send_password_changed(user["email"])
    return success_response(message="Password reset successfully")


@router.post("/refresh", summary="Mint a new access token from the refresh cookie")
async def refresh_token(
    request: Request,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise UnauthorizedException("No refresh token provided")

    try:
        payload = decode_token(token, REFRESH_TOKEN)
    except ExpiredSignatureError:
        raise UnauthorizedException("Refresh token expired")
    except JWTError:
        raise ForbiddenException("Invalid refresh token")

    user_id = payload["user"].get("_id")
    user = await db.users.find_one(active_user_filter(_id=parse_object_id(user_id)))
    if not user:
        raise UnauthorizedException("User no longer exists")

    access_token = create_access_token(user_claims(user))
    set_access_cookie(response, access_token)
    return success_response({"access_token": access_token}, "Token refreshed")


# =============================================================================
# Profile
# =============================================================================
@router.get("/profile", summary="Current user's profile")
async def get_profile(current_user: dict = Depends(get_current_user)):
    return success_response(public_user(current_user), user=public_user(current_user))


@router.put("/profile/edit", summary="Edit current user's profile")
async def edit_profile(
    data: ProfileUpdate,
    response: Response,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    changes = data.changes()
    sector = changes.pop("sector", None)

    if "username" in changes and changes["username"] != current_user["username"]:
        taken = await db.users.find_one({"username": changes["username"], "_id": {"$ne": current_user["_id"]}})
        if taken:
            raise BadRequestException("This username is already taken")

    if sector is not None:
        role = current_user.get("role")
        if role == UserRole.ENTREPRENEUR.value:
            profile_field, profile = "entrepreneur_profile", EntrepreneurProfile(sector=sector)
        elif role in PROFESSIONAL_PROFILE_FIELDS:
            profile_field, profile = PROFESSIONAL_PROFILE_FIELDS[role], ProfessionalProfile(sector=sector)
        else:
            profile_field = None

        # A dotted $set cannot create a field inside a null sub-document
        if profile_field and current_user.get(profile_field):
            changes[f"{profile_field}.sector"] = sector
        elif profile_field:
            changes[profile_field] = profile.model_dump()

    if not changes:
        raise BadRequestException("No fields to update")

    changes["updated_at"] = utcnow()
    user = await db.users.find_one_and_update(
        {"_id": current_user["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )

    # Claims embed the username, keep the session in sync
    issue_session(response, user)

    profile = public_user(user)
    return success_response(profile, "Profile updated successfully", user=profile)


@router.get("/profile/{user_id}", summary="Public profile of a verified user")
async def get_user_profile(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await db.users.find_one(
        active_user_filter(_id=parse_object_id(user_id), is_verified=True)
    )
    if not user:
        raise NotFoundException("User not found")
    return success_response(public_user(user), user=public_user(user))


@router.delete("/profile/{user_id}", summary="Soft-delete an account")
async def delete_account(
    response: Response,
    current_user: dict = Depends(get_current_user),
    user: dict = Depends(require_ownership(
        collection_loader("users", deleted_at=None),
        "_id",
        param="user_id",
        not_found="User not found",
        forbidden=DELETE_FORBIDDEN,
        allow_admin=True,
    )),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.users.update_one(
        {"_id": user["_id"]},
        {"$set": {"deleted_at": utcnow(), "updated_at": utcnow()}},
    )
    if same_id(user["_id"], current_user["_id"]):
        clear_session(response)

    logger.info(f"User {user['_id']} soft-deleted by {current_user['_id']}")
    return success_response(message="Account deleted successfully")
