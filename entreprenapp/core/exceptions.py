"""
Custom Exceptions.

Every error raised by a route handler or dependency ends up in the
uniform envelope ``{"success": false, "message": ...}``:
- APIException: base exception carrying status code and message
- Specific exceptions for common scenarios (NotFound, Forbidden, etc.)
- AuthenticationError: typed failure returned by credential extractors
"""
from typing import Any, Dict, List, Optional


class APIException(Exception):
    """
    Base API exception.

    Attributes:
        status_code: HTTP status code
        message: Human-readable error message
        errors: Per-field details, only populated for validation failures

    Usage:
        raise APIException(status_code=400, message="Invalid input data")
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.errors = errors
        self.headers = headers
        super().__init__(message)


# =============================================================================
# 400 Bad Request Exceptions
# =============================================================================
class BadRequestException(APIException):
    """400 Bad Request - Invalid client request or broken business rule."""

    def __init__(self, message: str = "Bad request"):
        super().__init__(status_code=400, message=message)


# =============================================================================
# 401/403 Authentication & Authorization Exceptions
# =============================================================================
class UnauthorizedException(APIException):
    """401 Unauthorized - Authentication required or failed."""

    def __init__(self, message: str = "Please log in to access this resource"):
        super().__init__(status_code=401, message=message)


class ForbiddenException(APIException):
    """403 Forbidden - Principal is not allowed to perform the action."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(status_code=403, message=message)


class AuthenticationError(APIException):
    """
    Typed failure produced while resolving a principal.

    ``reason`` is a stable machine-readable code; optional authentication
    catches this class and continues anonymously.
    """

    MISSING = "missing_credentials"
    INVALID = "invalid_token"
    EXPIRED = "expired_session"
    USER_GONE = "user_not_found"
    UNVERIFIED = "unverified_account"

    def __init__(self, reason: str, message: str, status_code: int = 401):
        self.reason = reason
        super().__init__(status_code=status_code, message=message)


# =============================================================================
# 404 Not Found Exceptions
# =============================================================================
class NotFoundException(APIException):
    """404 Not Found - Resource doesn't exist."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(status_code=404, message=message)


# =============================================================================
# 409 Conflict Exceptions
# =============================================================================
class ConflictException(APIException):
    """409 Conflict - Concurrent update lost the race."""

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(status_code=409, message=message)

