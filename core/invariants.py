"""
Transactional routines guarding cross-row invariants.

Everything here runs inside a caller-owned transaction (see
``database.engine.run_in_transaction``) and only flushes; committing or
rolling back is the caller's job. Reads that feed a decision take row locks
so that two concurrent requests cannot both pass the same check.
"""

import copy
import logging
from typing import Any, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    ConflictError,
    InvalidRequestError,
    OwnershipRequired,
    ResourceNotFound,
)
from core.utils.datetime import now
from database.models.applications import Application
from database.models.companies import CompanyMember, CompanyRole, MemberStatus
from database.models.jobs import JobPosting, JobStatus, QuestionBank
from database.models.users import Resume, User

logger = logging.getLogger(__name__)

DUPLICATE_APPLICATION_MESSAGE = "You have already applied to this job"
LAST_OWNER_DEMOTE_MESSAGE = "Cannot downgrade the last OWNER. Transfer ownership first."
LAST_OWNER_REVOKE_MESSAGE = "Cannot revoke the last OWNER."


def violates_constraint(exc: IntegrityError, constraint: str, *columns: str) -> bool:
    """
    Tell whether an IntegrityError came from a specific unique constraint.

    PostgreSQL reports the constraint name; SQLite reports the column list.
    """
    message = str(exc.orig)
    if constraint in message:
        return True
    return bool(columns) and all(column in message for column in columns)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return sqlstate == "23503" or "FOREIGN KEY constraint failed" in str(exc.orig)


# ==================== Ownership ===================== #
async def lock_active_owner_ids(db: AsyncSession, company_id: int) -> list[int]:
    """
    Lock and return the ACTIVE OWNER memberships of a company.

    Rows are selected rather than counted because PostgreSQL does not allow
    FOR UPDATE on aggregates.
    """
    result = await db.execute(
        select(CompanyMember.id)
        .where(
            CompanyMember.company_id == company_id,
            CompanyMember.role == CompanyRole.OWNER,
            CompanyMember.status == MemberStatus.ACTIVE,
        )
        .order_by(CompanyMember.id)
        .with_for_update()
    )
    return list(result.scalars().all())


async def ensure_not_last_owner(
    db: AsyncSession, membership: CompanyMember, message: str
) -> None:
    """
    Reject a demotion or revocation that would leave no ACTIVE OWNER.

    Only an ACTIVE OWNER counts towards the invariant, so any other
    membership passes without locking.

    Raises:
        ConflictError: If ``membership`` is the company's only ACTIVE OWNER
    """
    if membership.role != CompanyRole.OWNER or membership.status != MemberStatus.ACTIVE:
        return

    owner_ids = await lock_active_owner_ids(db, membership.company_id)
    if len(owner_ids) <= 1:
        logger.warning(
            f"Last OWNER protection triggered for company {membership.company_id}, "
            f"member {membership.id}"
        )
        raise ConflictError(message)


async def lock_membership(
    db: AsyncSession, company_id: int, member_id: int
) -> CompanyMember:
    """
    Load one membership of a company for update.

    Raises:
        ResourceNotFound: If the id does not belong to this company
    """
    result = await db.execute(
        select(CompanyMember)
        .where(CompanyMember.id == member_id, CompanyMember.company_id == company_id)
        .with_for_update()
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise ResourceNotFound("Member not found")
    return membership


async def transfer_ownership(
    db: AsyncSession,
    company_id: int,
    initiator_user_id: int,
    target_member_id: int,
) -> tuple[CompanyMember, CompanyMember]:
    """
    Promote a member to OWNER and demote the initiating OWNER to ADMIN.

    Both rows are locked in id order in one statement, then both mutations
    are flushed together; the caller's commit makes them visible at once.

    Args:
        db: Session with an open transaction
        company_id: Company the transfer happens in
        initiator_user_id: Actor handing over ownership
        target_member_id: Membership receiving ownership

    Returns:
        Tuple of (initiator membership, target membership)

    Raises:
        OwnershipRequired: If the initiator is not an ACTIVE OWNER
        ResourceNotFound: If the target is not an ACTIVE member of the company
        InvalidRequestError: If the initiator targets their own membership
    """
    result = await db.execute(
        select(CompanyMember)
        .where(
            CompanyMember.company_id == company_id,
            or_(
                CompanyMember.user_id == initiator_user_id,
                CompanyMember.id == target_member_id,
            ),
        )
        .order_by(CompanyMember.id)
        .with_for_update()
    )
    rows = result.scalars().all()
    initiator = next((m for m in rows if m.user_id == initiator_user_id), None)
    target = next((m for m in rows if m.id == target_member_id), None)

    if (
        initiator is None
        or initiator.role != CompanyRole.OWNER
        or initiator.status != MemberStatus.ACTIVE
    ):
        raise OwnershipRequired()
    if target is None or target.status != MemberStatus.ACTIVE:
        raise ResourceNotFound("Target member not found or not active")
    if target.id == initiator.id:
        raise InvalidRequestError("You already own this company")

    target.role = CompanyRole.OWNER
    initiator.role = CompanyRole.ADMIN
    await db.flush()
    return initiator, target


# ==================== Primary resume ===================== #
async def lock_resume_owner(db: AsyncSession, user_id: int) -> None:
    """
    Lock the user row that owns a set of resumes.

    The user row exists before the first resume does, so this is the lock
    that serializes first-resume and quota decisions.
    """
    await db.execute(select(User.id).where(User.id == user_id).with_for_update())


async def lock_user_resume_ids(db: AsyncSession, user_id: int) -> list[int]:
    """Serialize resume writes of one user and return their resume ids."""
    await lock_resume_owner(db, user_id)
    result = await db.execute(
        select(Resume.id)
        .where(Resume.user_id == user_id)
        .order_by(Resume.id)
        .with_for_update()
    )
    return list(result.scalars().all())


async def demote_primary_resumes(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(Resume)
        .where(Resume.user_id == user_id, Resume.is_primary.is_(True))
        .values(is_primary=False, updated_at=now())
        .execution_options(synchronize_session="fetch")
    )


async def promote_resume(db: AsyncSession, user_id: int, resume_id: int) -> None:
    """
    Make one resume the user's only primary.

    Demotion runs first as its own statement so the partial unique index
    never sees two primaries.
    """
    await demote_primary_resumes(db, user_id)
    await db.execute(
        update(Resume)
        .where(Resume.id == resume_id, Resume.user_id == user_id)
        .values(is_primary=True, updated_at=now())
        .execution_options(synchronize_session="fetch")
    )


async def detach_resume_from_applications(db: AsyncSession, resume_id: int) -> int:
    """Null every application reference to a resume about to be deleted."""
    result = await db.execute(
        update(Application)
        .where(Application.resume_id == resume_id)
        .values(resume_id=None)
        .returning(Application.id)
        .execution_options(synchronize_session="fetch")
    )
    return len(result.scalars().all())


# ==================== Applications ===================== #
async def find_existing_application(
    db: AsyncSession, job_id: int, user_id: int
) -> Optional[int]:
    """Pre-check for a friendlier duplicate error; not the safety mechanism."""
    result = await db.execute(
        select(Application.id).where(
            Application.job_id == job_id, Application.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def insert_application(db: AsyncSession, application: Application) -> Application:
    """
    Insert an application, mapping a lost uniqueness race onto Conflict.

    Raises:
        ConflictError: If a row for the same (job, user) exists, whether the
            pre-check saw it or not
    """
    db.add(application)
    try:
        await db.flush()
    except IntegrityError as exc:
        if violates_constraint(
            exc, "uq_applications_job_user", "applications.job_id", "applications.user_id"
        ):
            logger.info(
                f"Duplicate application rejected by constraint: job {application.job_id}, "
                f"user {application.user_id}"
            )
            raise ConflictError(DUPLICATE_APPLICATION_MESSAGE) from exc
        raise ConflictError("Application conflicts with a concurrent change") from exc
    return application


# ==================== Question snapshot ===================== #
def snapshot_questions(questions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Deep-copy a question list so the copy shares no structure with its source."""
    return copy.deepcopy(questions)


async def load_question_snapshot(
    db: AsyncSession, company_id: int, question_bank_id: int
) -> list[dict[str, Any]]:
    """
    Copy a company's question bank by value.

    Raises:
        ResourceNotFound: If the bank does not exist in this company
    """
    result = await db.execute(
        select(QuestionBank).where(
            QuestionBank.id == question_bank_id,
            QuestionBank.company_id == company_id,
        )
    )
    bank = result.scalar_one_or_none()
    if bank is None:
        raise ResourceNotFound("Question bank not found")
    return snapshot_questions(bank.questions)


# ==================== Auto-close ===================== #
async def close_expired_jobs(db: AsyncSession, company_id: Optional[int] = None) -> int:
    """
    Close every ACTIVE posting whose application deadline has passed.

    One set-based UPDATE; postings already CLOSED never match, so repeated
    runs are no-ops.

    Args:
        db: Session with an open transaction
        company_id: Restrict to one company, or None for all

    Returns:
        Number of postings closed
    """
    current = now()
    stmt = (
        update(JobPosting)
        .where(
            JobPosting.status == JobStatus.ACTIVE,
            JobPosting.application_deadline.is_not(None),
            JobPosting.application_deadline <= current,
            JobPosting.deleted_at.is_(None),
        )
        .values(status=JobStatus.CLOSED, updated_at=current)
        .returning(JobPosting.id)
        .execution_options(synchronize_session="fetch")
    )
    if company_id is not None:
        stmt = stmt.where(JobPosting.company_id == company_id)

    result = await db.execute(stmt)
    closed = len(result.scalars().all())
    if closed:
        logger.info(f"Auto-closed {closed} job posting(s) past deadline (company={company_id})")
    return closed
