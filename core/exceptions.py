"""
Domain error taxonomy.

Every error raised by the access pipeline or the service layer derives from
ServiceError and carries the HTTP status and machine-readable code it is
rendered with. None of them is retried; the only retried condition is a
storage serialization failure, which surfaces as TransientDatabaseError
once the retry budget is spent.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for user-visible errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "SERVICE_ERROR"
    default_message: str = "The request could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ==================== 401 ===================== #
class AuthenticationError(ServiceError):
    """Base exception for authentication errors."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class TokenMissingError(AuthenticationError):
    """Raised when no bearer token is presented."""

    code = "TOKEN_MISSING"
    default_message = "No authentication token provided"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""

    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token"


class UserNotFoundError(AuthenticationError):
    """Raised when the token subject no longer exists."""

    code = "USER_NOT_FOUND"
    default_message = "User account not found"


class UserInactiveError(AuthenticationError):
    """Raised when user account is inactive."""

    code = "USER_INACTIVE"
    default_message = "User account is inactive"


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


# ==================== 403 ===================== #
class AuthorizationError(ServiceError):
    """Base exception for authorization errors."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You don't have permission to perform this action"


class CompanyAccessDenied(AuthorizationError):
    """Raised when the actor holds no ACTIVE membership in the company."""

    code = "COMPANY_ACCESS_DENIED"
    default_message = "Access denied to this company"


class InsufficientRole(AuthorizationError):
    """Raised when the actor's role is outside the operation's allowed set."""

    code = "INSUFFICIENT_ROLE"
    default_message = "Your role does not allow this action"


class OwnershipRequired(AuthorizationError):
    code = "OWNERSHIP_REQUIRED"
    default_message = "Only OWNER can transfer ownership"


# ==================== 4xx business outcomes ===================== #
class ResourceNotFound(ServiceError):
    """Raised when a resource is absent or outside the caller's scope."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "The request conflicts with the current state"


class InvalidTransitionError(ServiceError):
    """Raised when a lifecycle state machine rejects a transition."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_TRANSITION"
    default_message = "This status change is not allowed"


class InvalidRequestError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"
    default_message = "Invalid request"


# ==================== 503 ===================== #
class TransientDatabaseError(ServiceError):
    """Raised when a guarded transaction keeps failing serialization."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "TRANSIENT_FAILURE"
    default_message = "The request could not be completed due to concurrent updates, please retry"
