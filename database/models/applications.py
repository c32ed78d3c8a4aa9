from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    JSON,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.utils.datetime import now
from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.jobs import JobPosting
    from database.models.users import Resume, User


class ApplicationStatus(str, PyEnum):
    """Application lifecycle status."""

    APPLIED = "APPLIED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class Application(Base):
    """
    One user's application to one job posting.

    ``company_id`` is copied from the job when the row is created and never
    rewritten. The (job_id, user_id) unique constraint is the authoritative
    guard against duplicate applications.
    """

    __tablename__: str = "applications"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    resume_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("resumes.id", ondelete="SET NULL")
    )
    answers: Mapped[Any | None] = mapped_column("answers_json", JSON)
    video_url: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplicationStatus.APPLIED,
    )
    status_changed_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
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
    job: Mapped["JobPosting"] = relationship("JobPosting", lazy="raise")
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="raise")
    resume: Mapped["Resume | None"] = relationship("Resume", lazy="raise")

    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
        Index("idx_applications_company_status", "company_id", "status"),
        Index("idx_applications_user", "user_id"),
        Index("idx_applications_resume", "resume_id"),
    )


class ApplicationComment(Base):
    """
    Reviewer note on an application, scoped to the application's company.
    """

    __tablename__: str = "application_comments"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    visible_to_candidate: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
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

    __table_args__ = (
        Index("idx_application_comments_application", "application_id"),
        Index("idx_application_comments_company", "company_id"),
    )
