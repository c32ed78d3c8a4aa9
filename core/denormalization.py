"""
Constructors for rows that carry a copied company id.

Applications take ``company_id`` from their job and comments take it from
their application. The copy is written once here and never reconciled
because a job never moves between companies.
"""

from typing import Any, Optional

from database.models.applications import Application, ApplicationComment, ApplicationStatus
from database.models.jobs import JobPosting


def new_application(
    job: JobPosting,
    user_id: int,
    resume_id: Optional[int] = None,
    answers: Any = None,
    video_url: Optional[str] = None,
) -> Application:
    return Application(
        job_id=job.id,
        company_id=job.company_id,
        user_id=user_id,
        resume_id=resume_id,
        answers=answers,
        video_url=video_url,
        status=ApplicationStatus.APPLIED,
    )


def new_comment(
    application: Application,
    author_id: int,
    comment: str,
    visible_to_candidate: bool = False,
) -> ApplicationComment:
    return ApplicationComment(
        application_id=application.id,
        company_id=application.company_id,
        user_id=author_id,
        comment=comment,
        visible_to_candidate=visible_to_candidate,
    )
