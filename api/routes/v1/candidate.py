"""
Candidate self-service endpoints.

Provides:
- Applying to jobs, listing and withdrawing own applications
- Resume management with a single primary resume
- Candidate profile
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_access
from api.schemas.applications import ApplicationCreate
from api.schemas.candidates import ProfileCreate, ProfileUpdate, ResumeCreate
from api.services import applications as application_service
from api.services import candidates as profile_service
from api.services import resumes as resume_service
from core.middleware.authentication import ActorContext
from core.middleware.authorization import Operations

router = APIRouter(prefix="/candidate", tags=["candidate"])


# ==================== Applications ===================== #
@router.post(
    "/applications",
    status_code=status.HTTP_201_CREATED,
    summary="Apply To Job",
    description="Apply to an ACTIVE job posting. One application per job.",
)
async def apply(
    body: ApplicationCreate,
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_APPLY)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.apply_to_job(
        db,
        actor.user_id,
        body.job_id,
        resume_id=body.resume_id,
        answers=body.answers_json,
        video_url=body.video_url,
    )


@router.get("/applications", summary="List My Applications")
async def list_my_applications(
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_APPLICATIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.list_my_applications(db, actor.user_id)


@router.patch(
    "/applications/{application_id}/withdraw",
    summary="Withdraw Application",
    description="Withdraw an application. Accepted applications cannot be withdrawn.",
)
async def withdraw_application(
    application_id: int = Path(..., description="Application ID"),
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_WITHDRAW)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.withdraw_application(db, actor.user_id, application_id)


# ==================== Resumes ===================== #
@router.post("/resumes", status_code=status.HTTP_201_CREATED, summary="Add Resume")
async def create_resume(
    body: ResumeCreate,
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_RESUMES)),
    db: AsyncSession = Depends(get_db),
):
    return await resume_service.create_resume(
        db,
        actor.user_id,
        body.file_url,
        title=body.title,
        is_primary=body.is_primary,
    )


@router.get("/resumes", summary="List Resumes")
async def list_resumes(
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_RESUMES)),
    db: AsyncSession = Depends(get_db),
):
    return await resume_service.list_resumes(db, actor.user_id)


@router.patch("/resumes/{resume_id}/primary", summary="Set Primary Resume")
async def set_primary_resume(
    resume_id: int = Path(..., description="Resume ID"),
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_RESUMES)),
    db: AsyncSession = Depends(get_db),
):
    return await resume_service.set_primary_resume(db, actor.user_id, resume_id)


@router.delete(
    "/resumes/{resume_id}",
    summary="Delete Resume",
    description="Delete a resume. Applications that used it keep no resume reference.",
)
async def delete_resume(
    resume_id: int = Path(..., description="Resume ID"),
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_RESUMES)),
    db: AsyncSession = Depends(get_db),
):
    detached = await resume_service.delete_resume(db, actor.user_id, resume_id)
    return {"message": "Resume deleted", "detached_applications": detached}


# ==================== Profile ===================== #
@router.post("/profile", status_code=status.HTTP_201_CREATED, summary="Create Profile")
async def create_profile(
    body: ProfileCreate,
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_PROFILE)),
    db: AsyncSession = Depends(get_db),
):
    return await profile_service.create_profile(db, actor.user_id, body.model_dump())


@router.get("/profile", summary="Get Profile")
async def get_profile(
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_PROFILE)),
    db: AsyncSession = Depends(get_db),
):
    return await profile_service.get_profile(db, actor.user_id)


@router.patch("/profile", summary="Update Profile")
async def update_profile(
    body: ProfileUpdate,
    actor: ActorContext = Depends(require_access(Operations.CANDIDATE_PROFILE)),
    db: AsyncSession = Depends(get_db),
):
    return await profile_service.update_profile(
        db, actor.user_id, body.model_dump(exclude_unset=True)
    )
