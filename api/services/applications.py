"""
Application service functions.

Candidate side: apply, list own, withdraw. Company side: list, review
decisions and comments. Status changes go through the state machines in
``core.lifecycle``; the apply path goes through ``core.invariants``.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.denormalization import new_application, new_comment
from core.exceptions import ConflictError, InvalidRequestError, ResourceNotFound
from core.invariants import (
    DUPLICATE_APPLICATION_MESSAGE,
    find_existing_application,
    insert_application,
)
from core.lifecycle import APPLICATION_REVIEW, APPLICATION_WITHDRAWAL
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import is_past, isoformat, now
from database.engine import run_in_transaction
from database.models.applications import (
    Application,
    ApplicationComment,
    ApplicationStatus,
)
from database.models.companies import Company
from database.models.jobs import JobPosting, JobStatus
from database.models.users import Resume, User

logger = logging.getLogger(__name__)

JOB_NOT_OPEN_MESSAGE = "Job not found or not accepting applications"


def serialize_application(application: Application) -> Dict[str, Any]:
    return {
        "id": application.id,
        "job_id": application.job_id,
        "user_id": application.user_id,
        "company_id": application.company_id,
        "resume_id": application.resume_id,
        "answers_json": application.answers,
        "video_url": application.video_url,
        "status": application.status.value,
        "status_changed_by": application.status_changed_by_id,
        "status_changed_at": isoformat(application.status_changed_at),
        "created_at": isoformat(application.created_at),
        "updated_at": isoformat(application.updated_at),
    }


def serialize_comment(comment: ApplicationComment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "application_id": comment.application_id,
        "company_id": comment.company_id,
        "user_id": comment.user_id,
        "comment": comment.comment,
        "visible_to_candidate": comment.visible_to_candidate,
        "created_at": isoformat(comment.created_at),
    }


# ==================== Candidate side ===================== #
async def apply_to_job(
    db: AsyncSession,
    user_id: int,
    job_id: int,
    resume_id: Optional[int] = None,
    answers: Optional[Any] = None,
    video_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Submit an application.

    The pre-check only produces a friendlier error; two concurrent
    submissions for the same job are settled by the (job_id, user_id)
    unique constraint, and the loser gets the same Conflict.

    Args:
        db: Database session
        user_id: Applying actor
        job_id: Target posting
        resume_id: One of the actor's resumes
        answers: Screening question answers
        video_url: Video submission URL

    Returns:
        The APPLIED application

    Raises:
        ResourceNotFound: If the job is not open or the resume is not the actor's
        InvalidRequestError: If the application deadline has passed
        ConflictError: If the actor already applied to this job
    """

    async def work(session: AsyncSession) -> Application:
        result = await session.execute(
            select(JobPosting)
            .join(Company, Company.id == JobPosting.company_id)
            .where(
                JobPosting.id == job_id,
                JobPosting.status == JobStatus.ACTIVE,
                JobPosting.deleted_at.is_(None),
                Company.deleted_at.is_(None),
            )
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise ResourceNotFound(JOB_NOT_OPEN_MESSAGE)
        if job.application_deadline is not None and is_past(job.application_deadline):
            raise InvalidRequestError("Application deadline has passed")

        if resume_id is not None:
            owned = await session.execute(
                select(Resume.id).where(Resume.id == resume_id, Resume.user_id == user_id)
            )
            if owned.scalar_one_or_none() is None:
                raise ResourceNotFound("Resume not found")

        if await find_existing_application(session, job_id, user_id) is not None:
            raise ConflictError(DUPLICATE_APPLICATION_MESSAGE)

        application = new_application(
            job, user_id, resume_id=resume_id, answers=answers, video_url=video_url
        )
        return await insert_application(session, application)

    application = await run_in_transaction(db, work)
    logger.info(f"Application {application.id} submitted for job {job_id}")
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=user_id,
        company_id=application.company_id,
        details={"job_id": job_id},
    )
    return serialize_application(application)


async def list_my_applications(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """
    List the actor's applications, newest first.

    Only comments flagged ``visible_to_candidate`` are included.
    """
    result = await db.execute(
        select(Application, JobPosting.title, Company.name)
        .join(JobPosting, JobPosting.id == Application.job_id)
        .join(Company, Company.id == Application.company_id)
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
    )
    rows = result.all()
    if not rows:
        return []

    application_ids = [application.id for application, _, _ in rows]
    comments_result = await db.execute(
        select(ApplicationComment)
        .where(
            ApplicationComment.application_id.in_(application_ids),
            ApplicationComment.visible_to_candidate.is_(True),
        )
        .order_by(ApplicationComment.created_at.asc(), ApplicationComment.id.asc())
    )
    comments: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    for comment in comments_result.scalars().all():
        comments[comment.application_id].append(
            {
                "id": comment.id,
                "comment": comment.comment,
                "created_at": isoformat(comment.created_at),
            }
        )

    return [
        {
            **serialize_application(application),
            "job_title": job_title,
            "company_name": company_name,
            "comments": comments.get(application.id, []),
        }
        for application, job_title, company_name in rows
    ]


async def withdraw_application(
    db: AsyncSession, user_id: int, application_id: int
) -> Dict[str, Any]:
    """
    Withdraw one of the actor's applications.

    Raises:
        ResourceNotFound: If the application is not the actor's
        InvalidTransitionError: If it is ACCEPTED or already WITHDRAWN
    """

    async def work(session: AsyncSession) -> Application:
        result = await session.execute(
            select(Application)
            .where(Application.id == application_id, Application.user_id == user_id)
            .with_for_update()
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise ResourceNotFound("Application not found")
        application.status = APPLICATION_WITHDRAWAL.ensure(
            application.status, ApplicationStatus.WITHDRAWN
        )
        await session.flush()
        return application

    application = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.WITHDRAW,
        ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=user_id,
        company_id=application.company_id,
    )
    return serialize_application(application)


# ==================== Company side ===================== #
async def _load_company_application(
    db: AsyncSession, company_id: int, application_id: int, for_update: bool = False
) -> Application:
    stmt = select(Application).where(
        Application.id == application_id, Application.company_id == company_id
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    application = result.scalar_one_or_none()
    if application is None:
        raise ResourceNotFound("Application not found")
    return application


async def list_company_applications(
    db: AsyncSession,
    company_id: int,
    pagination: PaginationParams,
    job_id: Optional[int] = None,
    status: Optional[ApplicationStatus] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    List applications received by a company, newest first.

    Args:
        db: Database session
        company_id: Receiving company
        pagination: Page selection
        job_id: Only applications to this posting
        status: Only applications in this status

    Returns:
        Tuple of (page items, total count)
    """
    conditions = [Application.company_id == company_id]
    if job_id is not None:
        conditions.append(Application.job_id == job_id)
    if status is not None:
        conditions.append(Application.status == status)

    total = await db.scalar(select(func.count()).select_from(Application).where(*conditions))

    comment_count = (
        select(func.count(ApplicationComment.id))
        .where(ApplicationComment.application_id == Application.id)
        .correlate(Application)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Application, User.email, JobPosting.title, Resume.file_url, comment_count)
        .join(User, User.id == Application.user_id)
        .join(JobPosting, JobPosting.id == Application.job_id)
        .outerjoin(Resume, Resume.id == Application.resume_id)
        .where(*conditions)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .offset(pagination.offset)
        .limit(pagination.page_size)
    )
    items = [
        {
            **serialize_application(application),
            "candidate_email": email,
            "job_title": job_title,
            "resume_url": resume_url,
            "comment_count": count or 0,
        }
        for application, email, job_title, resume_url, count in result.all()
    ]
    return items, total or 0


async def change_application_status(
    db: AsyncSession,
    company_id: int,
    application_id: int,
    status: ApplicationStatus,
    user_id: int,
) -> Dict[str, Any]:
    """
    Record a review decision.

    Raises:
        ResourceNotFound: If the application is not in this company
        InvalidTransitionError: If the application was withdrawn
    """

    async def work(session: AsyncSession) -> tuple[Application, ApplicationStatus]:
        application = await _load_company_application(
            session, company_id, application_id, for_update=True
        )
        previous = application.status
        application.status = APPLICATION_REVIEW.ensure(previous, status)
        application.status_changed_by_id = user_id
        application.status_changed_at = now()
        await session.flush()
        return application, previous

    application, previous = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.CHANGE_STATUS,
        ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=user_id,
        company_id=company_id,
        details={"from": previous.value, "to": status.value},
    )
    return serialize_application(application)


async def add_comment(
    db: AsyncSession,
    company_id: int,
    application_id: int,
    user_id: int,
    comment: str,
    visible_to_candidate: bool = False,
) -> Dict[str, Any]:
    async def work(session: AsyncSession) -> ApplicationComment:
        application = await _load_company_application(session, company_id, application_id)
        row = new_comment(application, user_id, comment, visible_to_candidate)
        session.add(row)
        await session.flush()
        return row

    row = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.COMMENT,
        resource_id=row.id,
        user_id=user_id,
        company_id=company_id,
        details={"application_id": application_id, "visible_to_candidate": visible_to_candidate},
    )
    return serialize_comment(row)


async def list_comments(
    db: AsyncSession, company_id: int, application_id: int
) -> List[Dict[str, Any]]:
    await _load_company_application(db, company_id, application_id)
    result = await db.execute(
        select(ApplicationComment)
        .where(
            ApplicationComment.application_id == application_id,
            ApplicationComment.company_id == company_id,
        )
        .order_by(ApplicationComment.created_at.asc(), ApplicationComment.id.asc())
    )
    return [serialize_comment(comment) for comment in result.scalars().all()]
