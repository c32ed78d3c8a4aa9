from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.utils.datetime import now
from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.companies import Company


# ==================== Enums ===================== #
class JobStatus(str, PyEnum):
    """Job posting status."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class JobVisibility(str, PyEnum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class ApplicationMode(str, PyEnum):
    """How candidates apply to a posting."""

    STANDARD = "STANDARD"
    QUESTIONNAIRE = "QUESTIONNAIRE"
    VIDEO = "VIDEO"


# ==================== Question Bank Model ===================== #
class QuestionBank(Base):
    """
    Reusable list of screening questions owned by a company.

    Edits here never reach job postings; postings hold their own copy.
    """

    __tablename__: str = "question_banks"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(
        "questions_json", JSON, nullable=False, default=list
    )
    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now,
        onupdate=now,
        server_default=func.now(),
    )

    __table_args__ = (Index("idx_question_banks_company", "company_id"),)


# ==================== Job Posting Model ===================== #
class JobPosting(Base):
    """
    A job opening published by a company.

    ``screening_questions`` is a by-value snapshot taken at creation.
    ``deleted_at`` is an orthogonal soft-delete flag, not a status.
    """

    __tablename__: str = "job_postings"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text)
    salary_range: Mapped[str | None] = mapped_column(String(100))
    location: Mapped[str | None] = mapped_column(String(255))
    employment_type: Mapped[str | None] = mapped_column(String(50))
    application_mode: Mapped[ApplicationMode] = mapped_column(
        SQLEnum(ApplicationMode, native_enum=False, length=20),
        nullable=False,
        default=ApplicationMode.STANDARD,
    )
    visibility: Mapped[JobVisibility] = mapped_column(
        SQLEnum(JobVisibility, native_enum=False, length=20),
        nullable=False,
        default=JobVisibility.PUBLIC,
    )
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=20),
        nullable=False,
        default=JobStatus.DRAFT,
    )
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    screening_questions: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now,
        onupdate=now,
        server_default=func.now(),
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", lazy="raise")

    __table_args__ = (
        Index("idx_job_postings_company_status", "company_id", "status"),
        Index("idx_job_postings_deleted_at", "deleted_at"),
        Index("idx_job_postings_deadline", "status", "application_deadline"),
        Index("idx_job_postings_public", "visibility", "status"),
    )
