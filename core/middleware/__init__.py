"""
Core middleware package.

This package provides:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- The access decision pipeline: credential verification, tenant membership
  resolution and role authorization
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authentication import (
    ActorContext,
    CredentialVerifier,
)

from core.middleware.authorization import (
    AccessLevel,
    MemberContext,
    Operation,
    Operations,
    RoleAuthorizer,
    TenantMembershipResolver,
)

from core.middleware.pipeline import AccessContext, AccessPipeline

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Access pipeline
    "ActorContext",
    "CredentialVerifier",
    "AccessLevel",
    "MemberContext",
    "Operation",
    "Operations",
    "RoleAuthorizer",
    "TenantMembershipResolver",
    "AccessContext",
    "AccessPipeline",
]
