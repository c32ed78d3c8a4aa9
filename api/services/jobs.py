"""Job posting service functions."""

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.exceptions import ResourceNotFound
from core.invariants import close_expired_jobs, load_question_snapshot
from core.lifecycle import JOB
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import ensure_utc, isoformat, now
from database.engine import run_in_transaction
from database.models.companies import Company
from database.models.jobs import JobPosting, JobStatus, JobVisibility

logger = logging.getLogger(__name__)

PUBLIC_JOB_FIELDS = (
    "id",
    "company_id",
    "title",
    "description",
    "requirements",
    "salary_range",
    "location",
    "employment_type",
)

# Columns that a PATCH may not null out
REQUIRED_JOB_FIELDS = frozenset(
    {"title", "description", "application_mode", "visibility", "status"}
)


def serialize_job(job: JobPosting) -> Dict[str, Any]:
    return {
        "id": job.id,
        "company_id": job.company_id,
        "title": job.title,
        "description": job.description,
        "requirements": job.requirements,
        "salary_range": job.salary_range,
        "location": job.location,
        "employment_type": job.employment_type,
        "application_mode": job.application_mode.value,
        "visibility": job.visibility.value,
        "status": job.status.value,
        "application_deadline": isoformat(job.application_deadline),
        "screening_questions": job.screening_questions,
        "created_by": job.created_by_id,
        "created_at": isoformat(job.created_at),
        "updated_at": isoformat(job.updated_at),
    }


def serialize_public_job(job: JobPosting, company_name: str) -> Dict[str, Any]:
    """Candidate-facing view; internal bookkeeping fields are left out."""
    data = {field: getattr(job, field) for field in PUBLIC_JOB_FIELDS}
    data.update(
        {
            "company_name": company_name,
            "application_mode": job.application_mode.value,
            "application_deadline": isoformat(job.application_deadline),
            "screening_questions": job.screening_questions,
            "created_at": isoformat(job.created_at),
        }
    )
    return data


async def auto_close_expired_jobs(
    db: AsyncSession, company_id: Optional[int] = None
) -> int:
    """Commit the deadline auto-close ahead of a read."""

    async def work(session: AsyncSession) -> int:
        return await close_expired_jobs(session, company_id)

    closed = await run_in_transaction(db, work)
    if closed:
        await log_audit_event(
            AuditAction.AUTO_CLOSE,
            ResourceType.JOB,
            company_id=company_id,
            details={"closed": closed},
        )
    return closed


async def _load_job(db: AsyncSession, company_id: int, job_id: int) -> JobPosting:
    result = await db.execute(
        select(JobPosting).where(
            JobPosting.id == job_id,
            JobPosting.company_id == company_id,
            JobPosting.deleted_at.is_(None),
        )
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise ResourceNotFound("Job not found")
    return job


async def create_job(
    db: AsyncSession, company_id: int, user_id: int, data: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Create a job posting.

    When ``question_bank_id`` is supplied the bank's questions are copied
    into the posting; the posting keeps no link to the bank.

    Args:
        db: Database session
        company_id: Owning company
        user_id: Creating member
        data: Validated job fields, optionally with ``question_bank_id``

    Returns:
        The created posting

    Raises:
        ResourceNotFound: If the question bank is not in this company
    """
    fields = dict(data)
    question_bank_id = fields.pop("question_bank_id", None)
    if fields.get("application_deadline") is not None:
        fields["application_deadline"] = ensure_utc(fields["application_deadline"])

    async def work(session: AsyncSession) -> JobPosting:
        screening_questions = None
        if question_bank_id is not None:
            screening_questions = await load_question_snapshot(
                session, company_id, question_bank_id
            )
        job = JobPosting(
            company_id=company_id,
            created_by_id=user_id,
            screening_questions=screening_questions,
            **fields,
        )
        session.add(job)
        await session.flush()
        return job

    job = await run_in_transaction(db, work)
    logger.info(f"Job {job.id} created in company {company_id}")
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.JOB,
        resource_id=job.id,
        user_id=user_id,
        company_id=company_id,
        details={"question_bank_id": question_bank_id},
    )
    return serialize_job(job)


async def list_jobs(
    db: AsyncSession,
    company_id: int,
    pagination: PaginationParams,
    status: Optional[JobStatus] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    List a company's postings, newest first.

    Expired ACTIVE postings are closed before the read is served.

    Returns:
        Tuple of (page items, total count)
    """
    await auto_close_expired_jobs(db, company_id)

    conditions = [JobPosting.company_id == company_id, JobPosting.deleted_at.is_(None)]
    if status is not None:
        conditions.append(JobPosting.status == status)

    total = await db.scalar(select(func.count()).select_from(JobPosting).where(*conditions))
    result = await db.execute(
        select(JobPosting)
        .where(*conditions)
        .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
        .offset(pagination.offset)
        .limit(pagination.page_size)
    )
    return [serialize_job(job) for job in result.scalars().all()], total or 0


async def get_job(db: AsyncSession, company_id: int, job_id: int) -> Dict[str, Any]:
    await auto_close_expired_jobs(db, company_id)
    return serialize_job(await _load_job(db, company_id, job_id))


async def update_job(
    db: AsyncSession, company_id: int, job_id: int, updates: Dict[str, Any]
) -> Dict[str, Any]:
    """Merge provided fields into a posting. The question snapshot is never replaced."""
    updates = {
        field: value
        for field, value in updates.items()
        if field != "question_bank_id"
        and not (value is None and field in REQUIRED_JOB_FIELDS)
    }
    if updates.get("application_deadline") is not None:
        updates["application_deadline"] = ensure_utc(updates["application_deadline"])

    async def work(session: AsyncSession) -> JobPosting:
        job = await _load_job(session, company_id, job_id)
        if "status" in updates:
            updates["status"] = JOB.ensure(job.status, updates["status"])
        for field, value in updates.items():
            setattr(job, field, value)
        await session.flush()
        return job

    job = await run_in_transaction(db, work)
    return serialize_job(job)


async def change_job_status(
    db: AsyncSession, company_id: int, job_id: int, status: JobStatus, user_id: int
) -> Dict[str, Any]:
    """Move a posting to another status through the job state machine."""

    async def work(session: AsyncSession) -> tuple[JobPosting, JobStatus]:
        job = await _load_job(session, company_id, job_id)
        previous = job.status
        job.status = JOB.ensure(previous, status)
        await session.flush()
        return job, previous

    job, previous = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.CHANGE_STATUS,
        ResourceType.JOB,
        resource_id=job.id,
        user_id=user_id,
        company_id=company_id,
        details={"from": previous.value, "to": status.value},
    )
    return serialize_job(job)


async def delete_job(
    db: AsyncSession, company_id: int, job_id: int, user_id: int
) -> None:
    """Soft-delete a posting; it disappears from every default read."""

    async def work(session: AsyncSession) -> None:
        job = await _load_job(session, company_id, job_id)
        job.deleted_at = now()
        await session.flush()

    await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.DELETE,
        ResourceType.JOB,
        resource_id=job_id,
        user_id=user_id,
        company_id=company_id,
    )


# ==================== Public browsing ===================== #
def _public_conditions() -> list:
    return [
        JobPosting.visibility == JobVisibility.PUBLIC,
        JobPosting.status == JobStatus.ACTIVE,
        JobPosting.deleted_at.is_(None),
        Company.deleted_at.is_(None),
    ]


async def list_public_jobs(
    db: AsyncSession, pagination: PaginationParams
) -> Tuple[List[Dict[str, Any]], int]:
    """
    List open public postings across all companies.

    Runs the global auto-close first, so no expired posting is served.
    """
    await auto_close_expired_jobs(db)

    conditions = _public_conditions()
    total = await db.scalar(
        select(func.count())
        .select_from(JobPosting)
        .join(Company, Company.id == JobPosting.company_id)
        .where(*conditions)
    )
    result = await db.execute(
        select(JobPosting, Company.name)
        .join(Company, Company.id == JobPosting.company_id)
        .where(*conditions)
        .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
        .offset(pagination.offset)
        .limit(pagination.page_size)
    )
    items = [serialize_public_job(job, name) for job, name in result.all()]
    return items, total or 0


async def get_public_job(db: AsyncSession, job_id: int) -> Dict[str, Any]:
    await auto_close_expired_jobs(db)

    result = await db.execute(
        select(JobPosting, Company.name)
        .join(Company, Company.id == JobPosting.company_id)
        .where(JobPosting.id == job_id, *_public_conditions())
    )
    row = result.one_or_none()
    if row is None:
        raise ResourceNotFound("Job not found")
    job, company_name = row
    return serialize_public_job(job, company_name)
