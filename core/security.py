"""
Security utilities: password hashing, access tokens and audit logging.

Access tokens are HS256 JWTs carrying the actor id as the ``user_id`` claim
with a fixed seven-day lifetime from issuance. Audit events are written as
structured JSON to the ``security.audit`` logger.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Set, TypedDict

import bcrypt
import jwt

from core.utils.datetime import now

logger = logging.getLogger("security.audit")

ACCESS_TOKEN_LIFETIME = timedelta(days=7)

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


class JWTPayload(TypedDict, total=False):
    """Claims carried by an access token."""

    user_id: int
    type: str
    iat: int
    exp: int
    jti: str


# ==================== Passwords ===================== #
def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plain-text password

    Returns:
        bcrypt hash as text
    """
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash
        return False


# ==================== Tokens ===================== #
def create_access_token(
    user_id: int,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Issue a signed access token for an actor.

    Args:
        user_id: Actor identifier placed in the ``user_id`` claim
        secret_key: Server-held signing secret
        algorithm: JWT signing algorithm
        expires_delta: Lifetime override, used by tests only
        issued_at: Issuance instant, defaults to now

    Returns:
        Encoded JWT
    """
    issued = issued_at or now()
    expires = issued + (expires_delta if expires_delta is not None else ACCESS_TOKEN_LIFETIME)
    payload: JWTPayload = {
        "user_id": user_id,
        "type": "access",
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def verify_jwt_token(token: str, secret_key: str, algorithm: str = "HS256") -> JWTPayload:
    """
    Verify signature and expiry of an access token.

    Args:
        token: Encoded JWT
        secret_key: Server-held signing secret
        algorithm: The only algorithm accepted

    Returns:
        Decoded claims

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: For any other verification failure
    """
    return jwt.decode(
        token,
        secret_key,
        algorithms=[algorithm],
        options={"require": ["exp", "iat", "user_id"]},
    )


# ==================== Audit ===================== #
class AuditAction(str, Enum):
    """Audit log action types."""

    CREATE = "CREATE"
    DELETE = "DELETE"

    # Membership
    INVITE = "INVITE"
    ACCEPT_INVITE = "ACCEPT_INVITE"
    CHANGE_ROLE = "CHANGE_ROLE"
    REVOKE = "REVOKE"
    TRANSFER_OWNERSHIP = "TRANSFER_OWNERSHIP"

    # Status changes
    CHANGE_STATUS = "CHANGE_STATUS"
    AUTO_CLOSE = "AUTO_CLOSE"
    WITHDRAW = "WITHDRAW"
    SET_PRIMARY = "SET_PRIMARY"


class ResourceType(str, Enum):
    """Resource types for audit logging."""

    USER = "USER"
    COMPANY = "COMPANY"
    MEMBERSHIP = "MEMBERSHIP"
    JOB = "JOB"
    QUESTION_BANK = "QUESTION_BANK"
    APPLICATION = "APPLICATION"
    COMMENT = "COMMENT"
    RESUME = "RESUME"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "full_name", "name",
    "linkedin_url", "portfolio_url", "photo_url",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Show first char and length only
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]
    else:
        return data


async def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[int] = None,
    user_id: Optional[int] = None,
    company_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    contains_pii: bool = False,
) -> None:
    """
    Log an audit event for a guarded mutation.

    Emitted after the mutation has committed, as one JSON line suitable for
    SIEM ingestion.
    """
    event = {
        "timestamp": now().isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "user_id": user_id,
        "company_id": company_id,
        "contains_pii": contains_pii,
        "details": mask_pii(details) if details and contains_pii else details,
    }

    logger.info(json.dumps(event, default=str))
