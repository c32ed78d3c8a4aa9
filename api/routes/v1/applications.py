"""
Company-side application endpoints.

Provides REST API for reviewing applications received by a company and
for leaving reviewer comments on them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, get_pagination, require_access
from api.schemas.applications import ApplicationStatusUpdate, CommentCreate
from api.schemas.common import PaginatedResponse, PaginationParams
from api.services import applications as application_service
from core.middleware.authorization import MemberContext, Operations
from database.models.applications import ApplicationStatus

router = APIRouter(prefix="/companies/{company_id}/applications", tags=["applications"])


@router.get(
    "",
    summary="List Applications",
    description="List applications received by the company, newest first.",
)
async def list_applications(
    job_id: Optional[int] = Query(None, description="Filter by job posting"),
    status_filter: Optional[ApplicationStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
    pagination: PaginationParams = Depends(get_pagination),
    ctx: MemberContext = Depends(require_access(Operations.APPLICATION_READ)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await application_service.list_company_applications(
        db, ctx.company_id, pagination, job_id=job_id, status=status_filter
    )
    return PaginatedResponse[dict].create(items, total, pagination)


@router.patch(
    "/{application_id}/status",
    summary="Review Application",
    description="Accept or reject an application. Withdrawn applications are final.",
)
async def change_application_status(
    body: ApplicationStatusUpdate,
    application_id: int = Path(..., description="Application ID"),
    ctx: MemberContext = Depends(require_access(Operations.APPLICATION_CHANGE_STATUS)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.change_application_status(
        db, ctx.company_id, application_id, body.status, ctx.user_id
    )


@router.post(
    "/{application_id}/comments",
    status_code=status.HTTP_201_CREATED,
    summary="Add Comment",
)
async def add_comment(
    body: CommentCreate,
    application_id: int = Path(..., description="Application ID"),
    ctx: MemberContext = Depends(require_access(Operations.APPLICATION_COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.add_comment(
        db,
        ctx.company_id,
        application_id,
        ctx.user_id,
        body.comment,
        visible_to_candidate=body.visible_to_candidate,
    )


@router.get("/{application_id}/comments", summary="List Comments")
async def list_comments(
    application_id: int = Path(..., description="Application ID"),
    ctx: MemberContext = Depends(require_access(Operations.APPLICATION_READ)),
    db: AsyncSession = Depends(get_db),
):
    """All reviewer comments, including those hidden from the candidate."""
    return await application_service.list_comments(db, ctx.company_id, application_id)
