"""Job posting and question bank schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from database.models.jobs import ApplicationMode, JobStatus, JobVisibility


class QuestionItem(BaseModel):
    """A single screening question inside a question bank."""

    id: str = Field(min_length=1, description="Question identifier")
    question: str = Field(min_length=1, description="Question text")
    category: Optional[str] = Field(None, description="Grouping label, e.g. 'python'")
    type: Literal["text", "number", "boolean", "choice"]
    options: Optional[list[str]] = Field(None, description="Choices, for type 'choice' only")
    is_required: bool = True

    @model_validator(mode="after")
    def check_options(self) -> "QuestionItem":
        """Require options exactly when the question is multiple choice."""
        if self.type == "choice" and not self.options:
            raise ValueError("options are required for choice questions")
        if self.type != "choice" and self.options is not None:
            raise ValueError("options are only allowed for choice questions")
        return self


class QuestionBankCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255, description="Question bank name")
    questions_json: list[QuestionItem] = Field(min_length=1, description="Questions")


class QuestionBankUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    questions_json: Optional[list[QuestionItem]] = Field(None, min_length=1)


class JobCreate(BaseModel):
    """Schema for creating a job posting."""

    title: str = Field(min_length=2, max_length=255, description="Job title")
    description: str = Field(min_length=10, description="Job description")
    requirements: Optional[str] = None
    salary_range: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    employment_type: Optional[str] = Field(None, max_length=50)
    application_mode: ApplicationMode = ApplicationMode.STANDARD
    visibility: JobVisibility = JobVisibility.PUBLIC
    status: JobStatus = JobStatus.DRAFT
    application_deadline: Optional[datetime] = Field(
        None, description="ISO-8601 instant after which the posting closes"
    )
    question_bank_id: Optional[int] = Field(
        None, gt=0, description="Question bank copied into the posting at creation"
    )


class JobUpdate(BaseModel):
    """Schema for updating a job; the question snapshot cannot be replaced."""

    title: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, min_length=10)
    requirements: Optional[str] = None
    salary_range: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    employment_type: Optional[str] = Field(None, max_length=50)
    application_mode: Optional[ApplicationMode] = None
    visibility: Optional[JobVisibility] = None
    status: Optional[JobStatus] = None
    application_deadline: Optional[datetime] = None


class JobStatusUpdate(BaseModel):
    status: JobStatus
