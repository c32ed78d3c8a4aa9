"""
Resume service functions.

Resume writes lock the owning user row first, so two concurrent writes for
one user run one after the other, including the very first resume.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ConflictError, InvalidRequestError, ResourceNotFound
from core.invariants import (
    demote_primary_resumes,
    detach_resume_from_applications,
    is_foreign_key_violation,
    lock_user_resume_ids,
    promote_resume,
    violates_constraint,
)
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import isoformat
from database.engine import run_in_transaction
from database.models.users import Resume

logger = logging.getLogger(__name__)


def serialize_resume(resume: Resume) -> Dict[str, Any]:
    return {
        "id": resume.id,
        "title": resume.title,
        "file_url": resume.file_url,
        "is_primary": resume.is_primary,
        "created_at": isoformat(resume.created_at),
        "updated_at": isoformat(resume.updated_at),
    }


async def _load_resume(db: AsyncSession, user_id: int, resume_id: int) -> Resume:
    result = await db.execute(
        select(Resume).where(Resume.id == resume_id, Resume.user_id == user_id)
    )
    resume = result.scalar_one_or_none()
    if resume is None:
        raise ResourceNotFound("Resume not found")
    return resume


async def create_resume(
    db: AsyncSession,
    user_id: int,
    file_url: str,
    title: Optional[str] = None,
    is_primary: bool = False,
    max_resumes: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Register a resume for the actor.

    The first resume is always primary. Asking for a primary resume demotes
    the current one before the insert, in the same transaction.

    Args:
        db: Database session
        user_id: Owning actor
        file_url: Stored file location
        title: Display title
        is_primary: Make this the primary resume
        max_resumes: Per-user quota, defaults to settings

    Returns:
        The stored resume

    Raises:
        InvalidRequestError: If the quota is reached
        ConflictError: If a concurrent write already set a primary resume
    """
    limit = max_resumes if max_resumes is not None else settings.max_resumes_per_user

    async def work(session: AsyncSession) -> Resume:
        existing_ids = await lock_user_resume_ids(session, user_id)
        if len(existing_ids) >= limit:
            raise InvalidRequestError(f"Maximum of {limit} resumes reached")

        make_primary = is_primary or not existing_ids
        if make_primary and existing_ids:
            await demote_primary_resumes(session, user_id)

        resume = Resume(
            user_id=user_id, title=title, file_url=file_url, is_primary=make_primary
        )
        session.add(resume)
        try:
            await session.flush()
        except IntegrityError as exc:
            if violates_constraint(exc, "uq_resumes_user_primary", "resumes.user_id"):
                raise ConflictError("Another primary resume was set at the same time") from exc
            raise
        return resume

    resume = await run_in_transaction(db, work)
    return serialize_resume(resume)


async def list_resumes(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """List the actor's resumes, primary first then newest first."""
    result = await db.execute(
        select(Resume)
        .where(Resume.user_id == user_id)
        .order_by(Resume.is_primary.desc(), Resume.created_at.desc(), Resume.id.desc())
    )
    return [serialize_resume(resume) for resume in result.scalars().all()]


async def set_primary_resume(
    db: AsyncSession, user_id: int, resume_id: int
) -> Dict[str, Any]:
    """
    Make one resume primary and every other resume of the actor non-primary.

    Raises:
        ResourceNotFound: If the resume is not the actor's
    """

    async def work(session: AsyncSession) -> Resume:
        owned_ids = await lock_user_resume_ids(session, user_id)
        if resume_id not in owned_ids:
            raise ResourceNotFound("Resume not found")
        await promote_resume(session, user_id, resume_id)
        return await _load_resume(session, user_id, resume_id)

    resume = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.SET_PRIMARY,
        ResourceType.RESUME,
        resource_id=resume.id,
        user_id=user_id,
    )
    return serialize_resume(resume)


async def delete_resume(db: AsyncSession, user_id: int, resume_id: int) -> int:
    """
    Delete a resume, detaching it from any application that used it.

    If the deleted resume was primary, the newest remaining one is promoted.

    Returns:
        Number of applications whose resume reference was cleared

    Raises:
        ResourceNotFound: If the resume is not the actor's
        ConflictError: If storage still refuses the delete on a foreign key
    """

    async def work(session: AsyncSession) -> int:
        await lock_user_resume_ids(session, user_id)
        resume = await _load_resume(session, user_id, resume_id)
        was_primary = resume.is_primary

        detached = await detach_resume_from_applications(session, resume_id)
        await session.delete(resume)
        try:
            await session.flush()
        except IntegrityError as exc:
            if is_foreign_key_violation(exc):
                raise ConflictError("Resume is referenced by an application") from exc
            raise

        if was_primary:
            result = await session.execute(
                select(Resume.id)
                .where(Resume.user_id == user_id)
                .order_by(Resume.created_at.desc(), Resume.id.desc())
                .limit(1)
            )
            successor_id = result.scalar_one_or_none()
            if successor_id is not None:
                await promote_resume(session, user_id, successor_id)
        return detached

    detached = await run_in_transaction(db, work)
    logger.info(f"Resume {resume_id} deleted, {detached} application(s) detached")
    await log_audit_event(
        AuditAction.DELETE,
        ResourceType.RESUME,
        resource_id=resume_id,
        user_id=user_id,
        details={"detached_applications": detached},
    )
    return detached
