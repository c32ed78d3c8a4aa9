"""
Company endpoints.

Creating and listing companies is actor-scoped; everything under
``/companies/{company_id}`` requires an ACTIVE membership in that company.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_access
from api.schemas.companies import CompanyCreate, CompanyUpdate
from api.services import companies as company_service
from core.middleware.authentication import ActorContext
from core.middleware.authorization import MemberContext, Operations

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Company",
    description="Create a company. The caller becomes its OWNER.",
)
async def create_company(
    body: CompanyCreate,
    actor: ActorContext = Depends(require_access(Operations.COMPANY_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await company_service.create_company(db, actor.user_id, body.model_dump())


@router.get("", summary="List My Companies")
async def list_my_companies(
    actor: ActorContext = Depends(require_access(Operations.COMPANY_LIST_MINE)),
    db: AsyncSession = Depends(get_db),
):
    """Companies where the caller holds an ACTIVE membership."""
    return await company_service.list_my_companies(db, actor.user_id)


@router.get("/{company_id}", summary="Get Company")
async def get_company(
    ctx: MemberContext = Depends(require_access(Operations.COMPANY_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await company_service.get_company(db, ctx.company_id)


@router.patch(
    "/{company_id}",
    summary="Update Company",
    description="Update company details. Requires OWNER or ADMIN.",
)
async def update_company(
    body: CompanyUpdate,
    ctx: MemberContext = Depends(require_access(Operations.COMPANY_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    return await company_service.update_company(
        db, ctx.company_id, body.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{company_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Company",
    description="Soft-delete the company. Requires OWNER.",
)
async def delete_company(
    ctx: MemberContext = Depends(require_access(Operations.COMPANY_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    await company_service.delete_company(db, ctx.company_id, ctx.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
