"""Application and comment schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from database.models.applications import ApplicationStatus

REVIEW_DECISIONS = (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED)


class ApplicationCreate(BaseModel):
    """Schema for applying to a job."""

    job_id: int = Field(gt=0, description="Job posting to apply to")
    resume_id: Optional[int] = Field(None, gt=0, description="One of the applicant's resumes")
    answers_json: Optional[Any] = Field(None, description="Answers to screening questions")
    video_url: Optional[str] = Field(None, max_length=2048)


class ApplicationStatusUpdate(BaseModel):
    """Company-side decision on an application."""

    status: ApplicationStatus

    @field_validator("status")
    @classmethod
    def only_decisions(cls, v: ApplicationStatus) -> ApplicationStatus:
        if v not in REVIEW_DECISIONS:
            raise ValueError("status must be ACCEPTED or REJECTED")
        return v


class CommentCreate(BaseModel):
    comment: str = Field(min_length=1, description="Comment text")
    visible_to_candidate: bool = False
