"""
Credential verification: the first stage of the access pipeline.

Turns an ``Authorization: Bearer <token>`` header into an ActorContext:
1. Extracts the bearer token
2. Verifies signature and expiry against the server-held secret
3. Loads the user named by the ``user_id`` claim
4. Rejects unknown or inactive users

Read-only; nothing is written to the database.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
    TokenMissingError,
    UserInactiveError,
    UserNotFoundError,
)
from core.security import verify_jwt_token
from database.models.users import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorContext:
    """Verified actor identity."""

    user_id: int
    email: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract JWT token from an Authorization header value.

    Args:
        authorization: Raw header value

    Returns:
        The token

    Raises:
        TokenMissingError: If the header is absent
        TokenInvalidError: If the header is not a Bearer credential
    """
    if not authorization:
        raise TokenMissingError()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise TokenInvalidError("Authorization header must be 'Bearer <token>'")
    return token.strip()


class CredentialVerifier:
    """
    Resolves a bearer token to an active actor.

    Configuration is passed in once at construction and never re-read.
    """

    def __init__(self, jwt_secret: str, jwt_algorithm: str = "HS256"):
        """
        Args:
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: The only signing algorithm accepted
        """
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def verify(self, db: AsyncSession, authorization: Optional[str]) -> ActorContext:
        """
        Verify a request's credentials.

        Args:
            db: Database session
            authorization: Raw Authorization header value

        Returns:
            ActorContext for the active user

        Raises:
            AuthenticationError: Any subclass, for every rejection reason
        """
        token = extract_bearer_token(authorization)

        try:
            payload = verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {type(e).__name__}")
            raise TokenInvalidError()

        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TokenInvalidError("Token missing user_id")
        if payload.get("type") != "access":
            raise TokenInvalidError("Not an access token")

        result = await db.execute(
            select(User.id, User.email, User.is_active).where(User.id == user_id)
        )
        row = result.one_or_none()

        if row is None:
            logger.warning(f"Token subject {user_id} not found")
            raise UserNotFoundError()

        if not row.is_active:
            logger.warning(f"Inactive user {user_id} attempted access")
            raise UserInactiveError()

        return ActorContext(user_id=row.id, email=row.email)
