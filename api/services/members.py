"""
Company membership service.

Invites, role changes, revocation, ownership transfer and invite
acceptance. Every path that could drop a company's last ACTIVE OWNER goes
through ``core.invariants``.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, InsufficientRole, ResourceNotFound
from core.invariants import (
    LAST_OWNER_DEMOTE_MESSAGE,
    LAST_OWNER_REVOKE_MESSAGE,
    ensure_not_last_owner,
    lock_membership,
    transfer_ownership as transfer_ownership_rows,
    violates_constraint,
)
from core.lifecycle import MEMBERSHIP, ensure_membership_mutable
from core.middleware.authorization import MemberContext
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import isoformat, now
from database.engine import run_in_transaction
from database.models.companies import Company, CompanyMember, CompanyRole, MemberStatus
from database.models.users import User

logger = logging.getLogger(__name__)

ALREADY_MEMBER_MESSAGE = "User is already a member of this company"


def serialize_member(member: CompanyMember, email: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "id": member.id,
        "company_id": member.company_id,
        "user_id": member.user_id,
        "role": member.role.value,
        "status": member.status.value,
        "invited_by": member.invited_by_id,
        "joined_at": isoformat(member.joined_at),
        "created_at": isoformat(member.created_at),
    }
    if email is not None:
        data["email"] = email
    return data


def _guard_owner_role(ctx: MemberContext, *roles: CompanyRole) -> None:
    """Only an OWNER may grant the OWNER role or touch an OWNER membership."""
    if CompanyRole.OWNER in roles and ctx.role != CompanyRole.OWNER:
        raise InsufficientRole("Only an OWNER can grant or modify the OWNER role")


async def invite_member(
    db: AsyncSession, ctx: MemberContext, email: str, role: CompanyRole
) -> Dict[str, Any]:
    """
    Invite an existing user into the company.

    The membership starts INVITED and grants nothing until the invitee
    accepts it.

    Args:
        db: Database session
        ctx: Inviting member
        email: Invitee email
        role: Role granted on acceptance

    Returns:
        The INVITED membership

    Raises:
        ResourceNotFound: If no account uses that email
        ConflictError: If the user already has a membership in any status
    """
    _guard_owner_role(ctx, role)

    async def work(session: AsyncSession) -> tuple[CompanyMember, User]:
        result = await session.execute(select(User).where(User.email == email))
        invitee = result.scalar_one_or_none()
        if invitee is None:
            raise ResourceNotFound("User with this email not found")

        existing = await session.execute(
            select(CompanyMember.id).where(
                CompanyMember.company_id == ctx.company_id,
                CompanyMember.user_id == invitee.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(ALREADY_MEMBER_MESSAGE)

        membership = CompanyMember(
            company_id=ctx.company_id,
            user_id=invitee.id,
            role=role,
            status=MemberStatus.INVITED,
            invited_by_id=ctx.user_id,
        )
        session.add(membership)
        try:
            await session.flush()
        except IntegrityError as exc:
            if violates_constraint(
                exc,
                "uq_company_members_company_user",
                "company_members.company_id",
                "company_members.user_id",
            ):
                raise ConflictError(ALREADY_MEMBER_MESSAGE) from exc
            raise
        return membership, invitee

    membership, invitee = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.INVITE,
        ResourceType.MEMBERSHIP,
        resource_id=membership.id,
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        details={"email": email, "role": role.value},
        contains_pii=True,
    )
    return serialize_member(membership, invitee.email)


async def list_members(db: AsyncSession, company_id: int) -> List[Dict[str, Any]]:
    """List every membership of a company, all statuses."""
    result = await db.execute(
        select(CompanyMember, User.email)
        .join(User, User.id == CompanyMember.user_id)
        .where(CompanyMember.company_id == company_id)
        .order_by(CompanyMember.created_at.asc(), CompanyMember.id.asc())
    )
    return [serialize_member(member, email) for member, email in result.all()]


async def change_role(
    db: AsyncSession, ctx: MemberContext, member_id: int, role: CompanyRole
) -> Dict[str, Any]:
    """
    Change a member's role.

    Raises:
        ResourceNotFound: If the member is not in this company
        InvalidTransitionError: If the membership is revoked
        ConflictError: If this would demote the last ACTIVE OWNER
    """

    async def work(session: AsyncSession) -> CompanyMember:
        membership = await lock_membership(session, ctx.company_id, member_id)
        ensure_membership_mutable(membership.status)
        _guard_owner_role(ctx, role, membership.role)

        if membership.role == role:
            return membership
        if role != CompanyRole.OWNER:
            await ensure_not_last_owner(session, membership, LAST_OWNER_DEMOTE_MESSAGE)

        membership.role = role
        await session.flush()
        return membership

    membership = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.CHANGE_ROLE,
        ResourceType.MEMBERSHIP,
        resource_id=membership.id,
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        details={"role": role.value},
    )
    return serialize_member(membership)


async def revoke_member(
    db: AsyncSession, ctx: MemberContext, member_id: int
) -> Dict[str, Any]:
    """
    Revoke a membership; revoking an INVITED one cancels the invite.

    Raises:
        ResourceNotFound: If the member is not in this company
        InvalidTransitionError: If it is already revoked
        ConflictError: If this is the last ACTIVE OWNER
    """

    async def work(session: AsyncSession) -> CompanyMember:
        membership = await lock_membership(session, ctx.company_id, member_id)
        target = MEMBERSHIP.ensure(membership.status, MemberStatus.REVOKED)
        _guard_owner_role(ctx, membership.role)
        await ensure_not_last_owner(session, membership, LAST_OWNER_REVOKE_MESSAGE)
        membership.status = target
        await session.flush()
        return membership

    membership = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.REVOKE,
        ResourceType.MEMBERSHIP,
        resource_id=membership.id,
        user_id=ctx.user_id,
        company_id=ctx.company_id,
    )
    return serialize_member(membership)


async def transfer_ownership(
    db: AsyncSession, ctx: MemberContext, target_member_id: int
) -> Dict[str, Any]:
    """
    Hand ownership to another ACTIVE member; the initiator becomes ADMIN.

    Returns:
        Both updated memberships
    """

    async def work(session: AsyncSession):
        return await transfer_ownership_rows(
            session, ctx.company_id, ctx.user_id, target_member_id
        )

    initiator, target = await run_in_transaction(db, work)
    logger.info(
        f"Ownership of company {ctx.company_id} transferred from member "
        f"{initiator.id} to member {target.id}"
    )
    await log_audit_event(
        AuditAction.TRANSFER_OWNERSHIP,
        ResourceType.MEMBERSHIP,
        resource_id=target.id,
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        details={"previous_owner_member_id": initiator.id},
    )
    return {
        "previous_owner": serialize_member(initiator),
        "new_owner": serialize_member(target),
    }


async def list_my_memberships(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """List the actor's memberships in every status, including pending invites."""
    result = await db.execute(
        select(CompanyMember, Company.name)
        .join(Company, Company.id == CompanyMember.company_id)
        .where(CompanyMember.user_id == user_id, Company.deleted_at.is_(None))
        .order_by(CompanyMember.created_at.desc(), CompanyMember.id.desc())
    )
    return [
        {**serialize_member(member), "company_name": name}
        for member, name in result.all()
    ]


async def accept_invitation(
    db: AsyncSession, user_id: int, member_id: int
) -> Dict[str, Any]:
    """
    Accept a pending invitation, making the membership ACTIVE.

    Raises:
        ResourceNotFound: If the membership is not the actor's, or its
            company was deleted
        InvalidTransitionError: If the membership is not INVITED
    """

    async def work(session: AsyncSession) -> CompanyMember:
        result = await session.execute(
            select(CompanyMember)
            .join(Company, Company.id == CompanyMember.company_id)
            .where(
                CompanyMember.id == member_id,
                CompanyMember.user_id == user_id,
                Company.deleted_at.is_(None),
            )
            .with_for_update(of=CompanyMember)
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            raise ResourceNotFound("Invitation not found")
        membership.status = MEMBERSHIP.ensure(membership.status, MemberStatus.ACTIVE)
        membership.joined_at = now()
        await session.flush()
        return membership

    membership = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.ACCEPT_INVITE,
        ResourceType.MEMBERSHIP,
        resource_id=membership.id,
        user_id=user_id,
        company_id=membership.company_id,
    )
    return serialize_member(membership)
