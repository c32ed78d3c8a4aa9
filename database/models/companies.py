from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.utils.datetime import now
from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.users import User


# ==================== Enums ===================== #
class CompanyRole(str, PyEnum):
    """
    Roles within a company, highest first.
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    RECRUITER = "RECRUITER"


class MemberStatus(str, PyEnum):
    """Lifecycle status of a membership."""

    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"


class Company(Base):
    """
    Tenant organization. Soft-deleted through ``deleted_at``.
    """

    __tablename__: str = "companies"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    logo_url: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(String(255))
    created_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
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

    # Indexes
    __table_args__ = (
        Index("idx_companies_deleted_at", "deleted_at"),
        Index("idx_companies_created_by", "created_by_id"),
    )


class CompanyMember(Base):
    """
    Membership of a user in a company, carrying role and status.

    Never hard-deleted; revocation is a status change. Role and status are
    only mutated through the guarded membership routines.
    """

    __tablename__: str = "company_members"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[CompanyRole] = mapped_column(
        SQLEnum(CompanyRole, native_enum=False, length=20),
        nullable=False,
        default=CompanyRole.RECRUITER,
    )
    status: Mapped[MemberStatus] = mapped_column(
        SQLEnum(MemberStatus, native_enum=False, length=20),
        nullable=False,
        default=MemberStatus.INVITED,
    )
    invited_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL")
    )
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
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
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="raise")
    company: Mapped["Company"] = relationship("Company", lazy="raise")

    # Indexes
    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_members_company_user"),
        Index("idx_company_members_user", "user_id"),
        Index("idx_company_members_owner_lookup", "company_id", "role", "status"),
    )
