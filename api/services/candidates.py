"""Candidate profile service functions."""

from typing import Any, Dict
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ResourceNotFound
from core.invariants import violates_constraint
from core.utils.datetime import isoformat
from database.engine import run_in_transaction
from database.models.users import CandidateProfile

logger = logging.getLogger(__name__)

PROFILE_EXISTS_MESSAGE = "Profile already exists"


def serialize_profile(profile: CandidateProfile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "full_name": profile.full_name,
        "bio": profile.bio,
        "photo_url": profile.photo_url,
        "linkedin_url": profile.linkedin_url,
        "portfolio_url": profile.portfolio_url,
        "phone": profile.phone,
        "created_at": isoformat(profile.created_at),
        "updated_at": isoformat(profile.updated_at),
    }


async def _load_profile(db: AsyncSession, user_id: int) -> CandidateProfile:
    result = await db.execute(
        select(CandidateProfile).where(CandidateProfile.user_id == user_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise ResourceNotFound("Profile not found")
    return profile


async def create_profile(
    db: AsyncSession, user_id: int, data: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Create the actor's profile.

    Raises:
        ConflictError: If the actor already has one
    """

    async def work(session: AsyncSession) -> CandidateProfile:
        existing = await session.execute(
            select(CandidateProfile.id).where(CandidateProfile.user_id == user_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(PROFILE_EXISTS_MESSAGE)

        profile = CandidateProfile(user_id=user_id, **data)
        session.add(profile)
        try:
            await session.flush()
        except IntegrityError as exc:
            if violates_constraint(
                exc, "candidate_profiles_user_id_key", "candidate_profiles.user_id"
            ):
                raise ConflictError(PROFILE_EXISTS_MESSAGE) from exc
            raise
        return profile

    profile = await run_in_transaction(db, work)
    return serialize_profile(profile)


async def get_profile(db: AsyncSession, user_id: int) -> Dict[str, Any]:
    return serialize_profile(await _load_profile(db, user_id))


async def update_profile(
    db: AsyncSession, user_id: int, updates: Dict[str, Any]
) -> Dict[str, Any]:
    """Merge provided fields into the actor's profile. A null full name is ignored."""
    if updates.get("full_name", "") is None:
        updates = {k: v for k, v in updates.items() if k != "full_name"}

    async def work(session: AsyncSession) -> CandidateProfile:
        profile = await _load_profile(session, user_id)
        for field, value in updates.items():
            setattr(profile, field, value)
        await session.flush()
        return profile

    profile = await run_in_transaction(db, work)
    return serialize_profile(profile)
