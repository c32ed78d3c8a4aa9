"""
Membership endpoints.

Company-side management lives under ``/companies/{company_id}/members``;
the invitee's own view and invite acceptance live under ``/memberships``.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_access
from api.schemas.companies import MemberInvite, MemberRoleUpdate
from api.services import members as member_service
from core.middleware.authentication import ActorContext
from core.middleware.authorization import MemberContext, Operations

router = APIRouter(prefix="/companies/{company_id}/members", tags=["members"])
memberships_router = APIRouter(prefix="/memberships", tags=["members"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Invite Member",
    description="Invite a registered user. The membership stays INVITED until accepted.",
)
async def invite_member(
    body: MemberInvite,
    ctx: MemberContext = Depends(require_access(Operations.MEMBER_INVITE)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.invite_member(db, ctx, body.email, body.role)


@router.get("", summary="List Members")
async def list_members(
    ctx: MemberContext = Depends(require_access(Operations.MEMBER_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.list_members(db, ctx.company_id)


@router.patch(
    "/{member_id}/role",
    summary="Change Member Role",
    description="Change a member's role. The last ACTIVE OWNER cannot be demoted.",
)
async def change_role(
    body: MemberRoleUpdate,
    member_id: int = Path(..., description="Membership ID"),
    ctx: MemberContext = Depends(require_access(Operations.MEMBER_CHANGE_ROLE)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.change_role(db, ctx, member_id, body.role)


@router.delete(
    "/{member_id}",
    summary="Revoke Member",
    description="Revoke a membership or cancel an invite. The last ACTIVE OWNER cannot be revoked.",
)
async def revoke_member(
    member_id: int = Path(..., description="Membership ID"),
    ctx: MemberContext = Depends(require_access(Operations.MEMBER_REVOKE)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.revoke_member(db, ctx, member_id)


@router.post(
    "/{member_id}/transfer-ownership",
    summary="Transfer Ownership",
    description="Promote an ACTIVE member to OWNER and demote the caller to ADMIN.",
)
async def transfer_ownership(
    member_id: int = Path(..., description="Membership receiving ownership"),
    ctx: MemberContext = Depends(require_access(Operations.MEMBER_TRANSFER_OWNERSHIP)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.transfer_ownership(db, ctx, member_id)


@memberships_router.get("", summary="List My Memberships")
async def list_my_memberships(
    actor: ActorContext = Depends(require_access(Operations.MEMBERSHIP_LIST_MINE)),
    db: AsyncSession = Depends(get_db),
):
    """The caller's memberships in every status, pending invites included."""
    return await member_service.list_my_memberships(db, actor.user_id)


@memberships_router.post("/{member_id}/accept", summary="Accept Invitation")
async def accept_invitation(
    member_id: int = Path(..., description="Membership ID"),
    actor: ActorContext = Depends(require_access(Operations.MEMBERSHIP_ACCEPT)),
    db: AsyncSession = Depends(get_db),
):
    return await member_service.accept_invitation(db, actor.user_id, member_id)
