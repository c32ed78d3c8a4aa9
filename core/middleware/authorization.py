"""
Tenant authorization: the second and third stages of the access pipeline.

This module implements:
1. Per-operation access declarations (access level + allowed roles)
2. Tenant membership resolution (ACTIVE memberships only)
3. Role authorization against the declared role set
4. Multi-tenant isolation for soft-deleted companies
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import CompanyAccessDenied, InsufficientRole
from core.middleware.authentication import ActorContext
from database.models.companies import Company, CompanyMember, CompanyRole, MemberStatus

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    """Which pipeline stages an operation runs through."""

    PUBLIC = "public"  # no stages
    ACTOR = "actor"  # credentials
    TENANT_READ = "tenant_read"  # credentials -> membership
    TENANT_WRITE = "tenant_write"  # credentials -> membership -> role


@dataclass(frozen=True)
class Operation:
    """
    Static access declaration for one operation.

    An empty ``allowed_roles`` set means any ACTIVE member may perform a
    TENANT_WRITE operation.
    """

    name: str
    access: AccessLevel
    allowed_roles: frozenset[CompanyRole] = frozenset()


ALL_ROLES = frozenset(CompanyRole)
MANAGERS = frozenset({CompanyRole.OWNER, CompanyRole.ADMIN})
OWNERS = frozenset({CompanyRole.OWNER})


class Operations:
    """Access declarations for every operation the API exposes."""

    # Authentication
    AUTH_REGISTER = Operation("auth:register", AccessLevel.PUBLIC)
    AUTH_LOGIN = Operation("auth:login", AccessLevel.PUBLIC)
    AUTH_ME = Operation("auth:me", AccessLevel.ACTOR)

    # Company Management
    COMPANY_CREATE = Operation("company:create", AccessLevel.ACTOR)
    COMPANY_LIST_MINE = Operation("company:list_mine", AccessLevel.ACTOR)
    COMPANY_READ = Operation("company:read", AccessLevel.TENANT_READ)
    COMPANY_UPDATE = Operation("company:update", AccessLevel.TENANT_WRITE, MANAGERS)
    COMPANY_DELETE = Operation("company:delete", AccessLevel.TENANT_WRITE, OWNERS)

    # Member Management
    MEMBER_INVITE = Operation("member:invite", AccessLevel.TENANT_WRITE, MANAGERS)
    MEMBER_READ = Operation("member:read", AccessLevel.TENANT_READ)
    MEMBER_CHANGE_ROLE = Operation("member:change_role", AccessLevel.TENANT_WRITE, MANAGERS)
    MEMBER_REVOKE = Operation("member:revoke", AccessLevel.TENANT_WRITE, MANAGERS)
    MEMBER_TRANSFER_OWNERSHIP = Operation(
        "member:transfer_ownership", AccessLevel.TENANT_WRITE, OWNERS
    )
    MEMBERSHIP_LIST_MINE = Operation("membership:list_mine", AccessLevel.ACTOR)
    MEMBERSHIP_ACCEPT = Operation("membership:accept", AccessLevel.ACTOR)

    # Question Banks
    QUESTION_BANK_READ = Operation("question_bank:read", AccessLevel.TENANT_READ)
    QUESTION_BANK_CREATE = Operation("question_bank:create", AccessLevel.TENANT_WRITE, ALL_ROLES)
    QUESTION_BANK_UPDATE = Operation("question_bank:update", AccessLevel.TENANT_WRITE, ALL_ROLES)
    QUESTION_BANK_DELETE = Operation("question_bank:delete", AccessLevel.TENANT_WRITE, ALL_ROLES)

    # Job Management
    JOB_READ = Operation("job:read", AccessLevel.TENANT_READ)
    JOB_CREATE = Operation("job:create", AccessLevel.TENANT_WRITE, ALL_ROLES)
    JOB_UPDATE = Operation("job:update", AccessLevel.TENANT_WRITE, ALL_ROLES)
    JOB_CHANGE_STATUS = Operation("job:change_status", AccessLevel.TENANT_WRITE, ALL_ROLES)
    JOB_DELETE = Operation("job:delete", AccessLevel.TENANT_WRITE, ALL_ROLES)
    JOB_BROWSE = Operation("job:browse", AccessLevel.PUBLIC)

    # Application Review
    APPLICATION_READ = Operation("application:read", AccessLevel.TENANT_READ)
    APPLICATION_CHANGE_STATUS = Operation(
        "application:change_status", AccessLevel.TENANT_WRITE, ALL_ROLES
    )
    APPLICATION_COMMENT = Operation("application:comment", AccessLevel.TENANT_WRITE, ALL_ROLES)

    # Candidate Self-Service
    CANDIDATE_APPLY = Operation("candidate:apply", AccessLevel.ACTOR)
    CANDIDATE_APPLICATIONS = Operation("candidate:applications", AccessLevel.ACTOR)
    CANDIDATE_WITHDRAW = Operation("candidate:withdraw", AccessLevel.ACTOR)
    CANDIDATE_RESUMES = Operation("candidate:resumes", AccessLevel.ACTOR)
    CANDIDATE_PROFILE = Operation("candidate:profile", AccessLevel.ACTOR)


@dataclass(frozen=True)
class MemberContext:
    """Actor plus their ACTIVE membership in the company being accessed."""

    actor: ActorContext
    company_id: int
    membership_id: int
    role: CompanyRole

    @property
    def user_id(self) -> int:
        return self.actor.user_id


def parse_company_id(raw: Union[str, int, None]) -> Optional[int]:
    """Coerce a route company id; anything non-numeric is treated as absent."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


class TenantMembershipResolver:
    """
    Finds the actor's ACTIVE membership in a company.

    INVITED and REVOKED memberships are indistinguishable from no
    membership. A soft-deleted company has no members.
    """

    async def resolve(
        self,
        db: AsyncSession,
        actor: ActorContext,
        company_id: Union[str, int, None],
    ) -> MemberContext:
        """
        Resolve the membership for a request.

        Args:
            db: Database session
            actor: Output of credential verification
            company_id: Company id taken from the route

        Returns:
            MemberContext carrying the membership role

        Raises:
            CompanyAccessDenied: If the company id is absent or the actor has
                no ACTIVE membership there
        """
        resolved_id = parse_company_id(company_id)
        if resolved_id is None:
            raise CompanyAccessDenied("Company ID missing in route")

        result = await db.execute(
            select(CompanyMember.id, CompanyMember.role)
            .join(Company, Company.id == CompanyMember.company_id)
            .where(
                CompanyMember.company_id == resolved_id,
                CompanyMember.user_id == actor.user_id,
                CompanyMember.status == MemberStatus.ACTIVE,
                Company.deleted_at.is_(None),
            )
        )
        row = result.one_or_none()

        if row is None:
            logger.warning(
                f"User {actor.user_id} attempted to access company {resolved_id} "
                f"without an active membership"
            )
            raise CompanyAccessDenied()

        return MemberContext(
            actor=actor,
            company_id=resolved_id,
            membership_id=row.id,
            role=row.role,
        )


class RoleAuthorizer:
    """Checks a resolved membership's role against an operation's role set."""

    def authorize(self, member: MemberContext, operation: Operation) -> MemberContext:
        """
        Raises:
            InsufficientRole: If the role is outside a non-empty allowed set
        """
        if operation.allowed_roles and member.role not in operation.allowed_roles:
            logger.warning(
                f"User {member.user_id} with role {member.role.value} denied "
                f"{operation.name} in company {member.company_id}"
            )
            raise InsufficientRole(
                f"Role {member.role.value} is not allowed to perform this action"
            )
        return member
