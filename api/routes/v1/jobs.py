"""
Job posting endpoints.

Company-scoped management under ``/companies/{company_id}/jobs`` and the
public job board under ``/jobs``. Every listing read closes expired
postings before it is served.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, get_pagination, require_access
from api.schemas.common import PaginatedResponse, PaginationParams
from api.schemas.jobs import JobCreate, JobStatusUpdate, JobUpdate
from api.services import jobs as job_service
from core.middleware.authorization import MemberContext, Operations
from database.models.jobs import JobStatus

router = APIRouter(prefix="/companies/{company_id}/jobs", tags=["jobs"])
public_router = APIRouter(prefix="/jobs", tags=["job-board"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Create a job posting. A question bank, if given, is copied into the posting.",
)
async def create_job(
    body: JobCreate,
    ctx: MemberContext = Depends(require_access(Operations.JOB_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.create_job(db, ctx.company_id, ctx.user_id, body.model_dump())


@router.get(
    "",
    summary="List Jobs",
    description="List the company's job postings, newest first.",
)
async def list_jobs(
    status_filter: Optional[JobStatus] = Query(None, alias="status", description="Filter by status"),
    pagination: PaginationParams = Depends(get_pagination),
    ctx: MemberContext = Depends(require_access(Operations.JOB_READ)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await job_service.list_jobs(
        db, ctx.company_id, pagination, status=status_filter
    )
    return PaginatedResponse[dict].create(items, total, pagination)


@router.get("/{job_id}", summary="Get Job")
async def get_job(
    job_id: int = Path(..., description="Job ID"),
    ctx: MemberContext = Depends(require_access(Operations.JOB_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.get_job(db, ctx.company_id, job_id)


@router.patch(
    "/{job_id}",
    summary="Update Job",
    description="Update job fields. Screening questions cannot be replaced.",
)
async def update_job(
    body: JobUpdate,
    job_id: int = Path(..., description="Job ID"),
    ctx: MemberContext = Depends(require_access(Operations.JOB_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.update_job(
        db, ctx.company_id, job_id, body.model_dump(exclude_unset=True)
    )


@router.patch("/{job_id}/status", summary="Change Job Status")
async def change_job_status(
    body: JobStatusUpdate,
    job_id: int = Path(..., description="Job ID"),
    ctx: MemberContext = Depends(require_access(Operations.JOB_CHANGE_STATUS)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.change_job_status(
        db, ctx.company_id, job_id, body.status, ctx.user_id
    )


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Job")
async def delete_job(
    job_id: int = Path(..., description="Job ID"),
    ctx: MemberContext = Depends(require_access(Operations.JOB_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    await job_service.delete_job(db, ctx.company_id, job_id, ctx.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Public job board ===================== #
@public_router.get(
    "",
    summary="Browse Jobs",
    description="Open public postings from every company. No authentication.",
    dependencies=[Depends(require_access(Operations.JOB_BROWSE))],
)
async def list_public_jobs(
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
):
    items, total = await job_service.list_public_jobs(db, pagination)
    return PaginatedResponse[dict].create(items, total, pagination)


@public_router.get(
    "/{job_id}",
    summary="View Job",
    dependencies=[Depends(require_access(Operations.JOB_BROWSE))],
)
async def get_public_job(
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.get_public_job(db, job_id)
