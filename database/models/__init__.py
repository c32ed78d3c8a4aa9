"""Model registry; importing this package registers every table on Base.metadata."""

from database.models.users import User, CandidateProfile, Resume
from database.models.companies import Company, CompanyMember, CompanyRole, MemberStatus
from database.models.jobs import (
    ApplicationMode,
    JobPosting,
    JobStatus,
    JobVisibility,
    QuestionBank,
)
from database.models.applications import Application, ApplicationComment, ApplicationStatus

__all__ = [
    "User",
    "CandidateProfile",
    "Resume",
    "Company",
    "CompanyMember",
    "CompanyRole",
    "MemberStatus",
    "ApplicationMode",
    "JobPosting",
    "JobStatus",
    "JobVisibility",
    "QuestionBank",
    "Application",
    "ApplicationComment",
    "ApplicationStatus",
]
