"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No sensitive data leaks in error messages

IMPORTANT: NEVER raise the base Exception class. Always use these exceptions.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    All custom exceptions inherit from this class. Subclasses only override
    ``status_code`` and ``default_message``.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the bearer token is missing or cannot be verified.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    """Raised when the bearer token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when the bearer token is malformed or has an invalid signature."""

    default_message = "Token is invalid"


class AuthorizationError(AppException):
    """
    Raised when user lacks permissions for an action.

    WHY: Distinguishing authorization (403) from authentication (401) helps
    frontends show "You don't have permission" instead of "Please log in".

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class AuthorizationDenied(AuthorizationError):
    """
    Raised when the user is not a member of the organization.

    WHY: Absence of membership is an authorization failure, never a
    missing-data case, so it stays a 403 even when the organization
    itself does not exist.

    HTTP Status: 403 Forbidden
    """

    default_message = "User does not have access to this organization"


class InsufficientPermissionsError(AuthorizationError):
    """
    Raised when a member's role doesn't allow an action.

    Typically a LimitedAccess member attempting a mutation.

    HTTP Status: 403 Forbidden
    """

    default_message = "Insufficient permissions"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class InvalidRecordKindError(ValidationError):
    """Raised when a record kind is not one of the organization collections."""

    default_message = "Unknown record kind"


class InvalidQueryError(ValidationError):
    """Raised when a query constraint uses an unsupported operator or value."""

    default_message = "Invalid query constraint"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class RecordNotFoundError(ResourceNotFoundError):
    """Raised when a namespaced record doesn't exist in the organization."""

    default_message = "Record not found"


class OrganizationNotFoundError(ResourceNotFoundError):
    """Raised when an organization doesn't exist."""

    default_message = "Organization not found"


class InvitationNotFoundError(ResourceNotFoundError):
    """Raised when an invitation token is unknown."""

    default_message = "Invitation not found"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a business rule is violated.

    WHY: 422 Unprocessable Entity indicates the request was well-formed
    but semantically incorrect (e.g., deleting a space that has sub-spaces).

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class HierarchyConflictError(BusinessRuleViolation):
    """Raised when a category/space change would break the tree."""

    default_message = "Hierarchy conflict"


class MembershipRuleViolation(BusinessRuleViolation):
    """Raised when a member tries to remove themselves or change their own role."""

    default_message = "Membership change not allowed"


class InvitationExpiredError(BusinessRuleViolation):
    """Raised when an invitation was already used or is past its expiry."""

    status_code = 410
    default_message = "Invitation is no longer valid"


# ============================================================================
# Database Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when database operations fail.

    WHY: Database errors are converted to application exceptions with
    safe error messages (no SQL exposed).

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"


class StorageWriteError(DatabaseError):
    """
    Raised when the backing store rejects a write.

    Covers constraint violations, malformed data and transient backend
    failures. Propagated unmodified; no retries are attempted.
    """

    default_message = "Failed to write record"


class RecordAlreadyExistsError(StorageWriteError):
    """
    Raised when create targets a path that already holds a record.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Record already exists"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Base exception for external service failures.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class S3Error(ExternalServiceError):
    """Raised when S3/object storage operations fail."""

    default_message = "File storage error"


class AIServiceError(ExternalServiceError):
    """
    Base exception for AI/LLM service failures.

    HTTP Status: 502 Bad Gateway
    """

    default_message = "AI service error"


class AIGenerationError(AIServiceError):
    """
    Raised when the model output cannot be used.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "AI generation failed"


class AIRateLimitError(AIServiceError):
    """
    Raised when the AI provider rate limit is exceeded.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    default_message = "AI service rate limit exceeded - please try again later"


class AIQuotaExceededError(AIServiceError):
    """
    Raised when the organization used up its monthly suggestion quota.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    default_message = "Monthly AI quota exceeded"


class AIServiceUnavailableError(AIServiceError):
    """
    Raised when no AI provider is configured.

    HTTP Status: 503 Service Unavailable
    """

    status_code = 503
    default_message = "AI service is not available"
