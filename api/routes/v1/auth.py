"""
Authentication endpoints.

Provides:
- Email/password signup
- Email/password login
- Current actor lookup
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_access
from api.schemas.auth import LoginRequest, RegisterRequest
from api.services import auth as auth_service
from core.middleware.authentication import ActorContext
from core.middleware.authorization import Operations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and receive an access token.",
    dependencies=[Depends(require_access(Operations.AUTH_REGISTER))],
)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.register(db, body.email, body.password)


@router.post(
    "/login",
    summary="Login",
    description="Exchange email and password for an access token.",
    dependencies=[Depends(require_access(Operations.AUTH_LOGIN))],
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.login(db, body.email, body.password)


@router.get("/me", summary="Current User")
async def me(
    actor: ActorContext = Depends(require_access(Operations.AUTH_ME)),
    db: AsyncSession = Depends(get_db),
):
    """Return the account behind the bearer token."""
    return await auth_service.get_user(db, actor.user_id)
