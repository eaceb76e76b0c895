"""
Authentication Dependencies.

Resolves the acting principal for a request. Two credential extractors
share one interface:

- CookieCredentialExtractor: ``accessToken`` cookie, silently falling back
  to the ``refreshToken`` cookie when the access token is missing or expired
- BearerCredentialExtractor: ``Authorization: Bearer`` header, consulted only
  when no access cookie is present; a rejected bearer token defers to the
  refresh cookie when one is sent

Each returns a normalized ``Credential`` or raises ``AuthenticationError``.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request, Response
from jose import ExpiredSignatureError, JWTError
from motor.motor_asyncio import AsyncIOMotorDatabase

from entreprenapp.core.exceptions import AuthenticationError, ForbiddenException
from entreprenapp.core.security import (
    ACCESS_COOKIE,
    ACCESS_TOKEN,
    REFRESH_COOKIE,
    REFRESH_TOKEN,
    create_access_token,
    decode_token,
    set_access_cookie,
    user_claims,
)
from entreprenapp.db.mongodb import get_database
from entreprenapp.models.user import active_user_filter

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """Verified identity snapshot taken from a token."""

    claims: dict
    source: str
    needs_reissue: bool = False

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.get("_id")


class CredentialExtractor:
    """Return a Credential, None when not applicable, or raise AuthenticationError."""

    source = "unknown"

    def extract(self, request: Request) -> Optional[Credential]:
        raise NotImplementedError


class CookieCredentialExtractor(CredentialExtractor):
    source = "cookie"

    def extract(self, request: Request) -> Optional[Credential]:
        access_token = request.cookies.get(ACCESS_COOKIE)
        refresh_token = request.cookies.get(REFRESH_COOKIE)

        if access_token:
            try:
                payload = decode_token(access_token, ACCESS_TOKEN)
                return Credential(claims=payload["user"], source=self.source)
            except ExpiredSignatureError:
                logger.debug("Access token expired, trying refresh token")
            except JWTError:
                raise AuthenticationError(AuthenticationError.INVALID, "Invalid authentication")

        if not refresh_token:
            return None

        try:
            payload = decode_token(refresh_token, REFRESH_TOKEN)
        except JWTError:
            raise AuthenticationError(AuthenticationError.EXPIRED, "Invalid or expired session")

        return Credential(claims=payload["user"], source="refresh", needs_reissue=True)


class BearerCredentialExtractor(CredentialExtractor):
    source = "bearer"

    def extract(self, request: Request) -> Optional[Credential]:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None

        try:
            payload = decode_token(token.strip(), ACCESS_TOKEN)
        except ExpiredSignatureError:
            raise AuthenticationError(AuthenticationError.EXPIRED, "Access token expired")
        except JWTError:
            raise AuthenticationError(AuthenticationError.INVALID, "Invalid authentication")

        return Credential(claims=payload["user"], source=self.source)


cookie_extractor = CookieCredentialExtractor()
bearer_extractor = BearerCredentialExtractor()


def resolve_credential(request: Request) -> Credential:
    """
    Pick the extractor for this request and return its credential.

    A bearer token that fails verification does not end the request while a
    refresh cookie can still recover the session; its error is raised only
    when the cookie extractor finds nothing.
    """
    if request.cookies.get(ACCESS_COOKIE):
        extractors = (cookie_extractor,)
    else:
        extractors = (bearer_extractor, cookie_extractor)

    bearer_error: Optional[AuthenticationError] = None
    for extractor in extractors:
        try:
            credential = extractor.extract(request)
        except AuthenticationError as e:
            if extractor is not bearer_extractor:
                raise
            logger.debug(f"Bearer token rejected ({e.reason}), trying refresh cookie")
            bearer_error = e
            continue
        if credential is not None:
            return credential

    if bearer_error is not None:
        raise bearer_error

    raise AuthenticationError(
        AuthenticationError.MISSING, "Please log in to access this resource"
    )


async def authenticate(request: Request, response: Response, db: AsyncIOMotorDatabase) -> dict:
    """
    Resolve the principal and load the matching user document.

    When the session was recovered from the refresh cookie a fresh access
    cookie is set on ``response``.
    """
    credential = resolve_credential(request)

    user_id = credential.user_id
    if not user_id or not ObjectId.is_valid(user_id):
        raise AuthenticationError(AuthenticationError.INVALID, "Invalid authentication")

    user = await db.users.find_one(active_user_filter(_id=ObjectId(user_id)))
    if not user:
        raise AuthenticationError(AuthenticationError.USER_GONE, "User no longer exists")

    if not user.get("is_verified"):
        raise AuthenticationError(
            AuthenticationError.UNVERIFIED,
            "Please verify your account first",
            status_code=403,
        )

    if credential.needs_reissue:
        set_access_cookie(response, create_access_token(user_claims(user)))
        logger.info(f"Access token reissued from refresh token for user {user_id}")

    request.state.user = user
    return user


async def get_current_user(
    request: Request,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> dict:
    """
    Get current authenticated user.

    Raises 401/403 with a machine-readable reason if not authenticated.
    """
    return await authenticate(request, response, db)


async def get_current_user_optional(
    request: Request,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> Optional[dict]:
    """Get current user if authenticated, None otherwise."""
    try:
        return await authenticate(request, response, db)
    except AuthenticationError as e:
        logger.debug(f"Continuing anonymously: {e.reason}")
        return None


def require_roles(*roles: str):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles("admin"))])
    """
    allowed = set(roles)

    async def dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in allowed:
            raise ForbiddenException(
                f"Role '{current_user.get('role')}' is not allowed to access this resource"
            )
        return current_user

    return dependency
