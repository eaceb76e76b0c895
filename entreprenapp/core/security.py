"""
Security Utilities.

Provides the primitives behind the cookie session:
- Password hashing and verification (bcrypt)
- Access/refresh JWT creation and verification with distinct secrets
- Session cookie helpers
- One-time codes for email verification and password reset
"""
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Response
from jose import jwt
from jose.exceptions import JWTClaimsError
from passlib.context import CryptContext

from entreprenapp.config import settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


# =============================================================================
# Password Hashing
# =============================================================================
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# JWT Token Management
# =============================================================================
def user_claims(user: dict) -> dict[str, Any]:
    """Identity snapshot embedded in both tokens."""
    return {
        "_id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "role": user.get("role"),
        "isVerified": bool(user.get("is_verified", False)),
    }


def _secret_for(token_type: str) -> str:
    if token_type == REFRESH_TOKEN:
        return settings.JWT_REFRESH_SECRET
    return settings.JWT_ACCESS_SECRET


def _encode(claims: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    now = datetime.utcnow()
    to_encode = {
        "sub": claims["_id"],
        "user": claims,
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
    }
    return jwt.encode(to_encode, _secret_for(token_type), algorithm=settings.JWT_ALGORITHM)


def create_access_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived JWT access token from a user snapshot."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(claims, ACCESS_TOKEN, expires_delta)


def create_refresh_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a long-lived JWT refresh token from a user snapshot."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(claims, REFRESH_TOKEN, expires_delta)


def decode_token(token: str, token_type: str = ACCESS_TOKEN) -> dict[str, Any]:
    """
    Decode and verify a JWT with the secret matching its type.

    Raises:
        jose.ExpiredSignatureError: If the token has expired
        jose.JWTError: If the signature or payload is invalid
    """
    payload = jwt.decode(token, _secret_for(token_type), algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != token_type or not isinstance(payload.get("user"), dict):
        raise JWTClaimsError("Unexpected token payload")
    return payload


# =============================================================================
# Session Cookies
# =============================================================================
def set_access_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path=settings.COOKIE_PATH,
    )


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path=settings.COOKIE_PATH,
    )


def issue_session(response: Response, user: dict) -> dict[str, str]:
    """Mint both tokens for ``user`` and attach them as cookies."""
    claims = user_claims(user)
    tokens = {
        "accessToken": create_access_token(claims),
        "refreshToken": create_refresh_token(claims),
    }
    set_access_cookie(response, tokens["accessToken"])
    set_refresh_cookie(response, tokens["refreshToken"])
    return tokens


def clear_session(response: Response) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=settings.COOKIE_PATH,
            httponly=True,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
        )


# =============================================================================
# One-time codes
# =============================================================================
def generate_verification_code() -> str:
    """Six-digit numeric code sent by email at registration."""
    return f"{secrets.randbelow(900000) + 100000}"


def generate_reset_token() -> tuple[str, str]:
    """Return ``(raw_token, sha256_digest)``; only the digest is stored."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)


def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
