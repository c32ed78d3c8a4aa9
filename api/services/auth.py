"""Account registration and login."""

import logging
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    ResourceNotFound,
    UserInactiveError,
)
from core.invariants import violates_constraint
from core.security import (
    AuditAction,
    ResourceType,
    create_access_token,
    hash_password,
    log_audit_event,
    verify_password,
)
from core.utils.datetime import isoformat
from database.engine import run_in_transaction
from database.models.users import User

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Email already registered"


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "is_active": user.is_active,
        "is_email_verified": user.is_email_verified,
        "created_at": isoformat(user.created_at),
    }


def _token_response(user: User) -> Dict[str, Any]:
    return {
        "access_token": create_access_token(
            user.id, settings.jwt_secret_key, settings.jwt_algorithm
        ),
        "token_type": "bearer",
        "user": serialize_user(user),
    }


async def register(db: AsyncSession, email: str, password: str) -> Dict[str, Any]:
    """
    Create an account and issue its first access token.

    Args:
        db: Database session
        email: Normalized email address
        password: Plain-text password

    Returns:
        Token response with the new user

    Raises:
        ConflictError: If the email is already registered
    """

    async def work(session: AsyncSession) -> User:
        existing = await session.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        user = User(email=email, password_hash=hash_password(password), is_active=True)
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as exc:
            if violates_constraint(exc, "users_email_key", "users.email"):
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from exc
            raise
        return user

    user = await run_in_transaction(db, work)
    logger.info(f"Registered user {user.id}")
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        details={"email": email},
        contains_pii=True,
    )
    return _token_response(user)


async def login(db: AsyncSession, email: str, password: str) -> Dict[str, Any]:
    """
    Exchange credentials for an access token.

    Unknown email and wrong password are indistinguishable to the caller.

    Raises:
        InvalidCredentialsError: On any credential mismatch
        UserInactiveError: If the account is deactivated
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError()
    if not user.is_active:
        raise UserInactiveError()

    return _token_response(user)


async def get_user(db: AsyncSession, user_id: int) -> Dict[str, Any]:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise ResourceNotFound("User not found")
    return serialize_user(user)
