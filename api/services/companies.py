"""Company service functions."""

from typing import Any, Dict, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ResourceNotFound
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import isoformat, now
from database.engine import run_in_transaction
from database.models.companies import Company, CompanyMember, CompanyRole, MemberStatus

logger = logging.getLogger(__name__)


def serialize_company(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "description": company.description,
        "logo_url": company.logo_url,
        "website": company.website,
        "created_by": company.created_by_id,
        "created_at": isoformat(company.created_at),
        "updated_at": isoformat(company.updated_at),
    }


async def _load_company(db: AsyncSession, company_id: int) -> Company:
    result = await db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    )
    company = result.scalar_one_or_none()
    if company is None:
        raise ResourceNotFound("Company not found")
    return company


async def create_company(
    db: AsyncSession, user_id: int, data: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Create a company with its creator as ACTIVE OWNER.

    Both rows are written in one transaction, so a company never exists
    without an owner.

    Args:
        db: Database session
        user_id: Creating actor
        data: Validated company fields

    Returns:
        Company details with the creator's membership
    """

    async def work(session: AsyncSession) -> tuple[Company, CompanyMember]:
        company = Company(created_by_id=user_id, **data)
        session.add(company)
        await session.flush()

        membership = CompanyMember(
            company_id=company.id,
            user_id=user_id,
            role=CompanyRole.OWNER,
            status=MemberStatus.ACTIVE,
            joined_at=now(),
        )
        session.add(membership)
        await session.flush()
        return company, membership

    company, membership = await run_in_transaction(db, work)
    logger.info(f"Company {company.id} created by user {user_id}")
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.COMPANY,
        resource_id=company.id,
        user_id=user_id,
        company_id=company.id,
    )
    return {
        **serialize_company(company),
        "membership": {
            "id": membership.id,
            "role": membership.role.value,
            "status": membership.status.value,
        },
    }


async def list_my_companies(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """List companies where the actor holds an ACTIVE membership."""
    result = await db.execute(
        select(Company, CompanyMember.role)
        .join(CompanyMember, CompanyMember.company_id == Company.id)
        .where(
            CompanyMember.user_id == user_id,
            CompanyMember.status == MemberStatus.ACTIVE,
            Company.deleted_at.is_(None),
        )
        .order_by(Company.created_at.desc(), Company.id.desc())
    )
    return [
        {**serialize_company(company), "role": role.value}
        for company, role in result.all()
    ]


async def get_company(db: AsyncSession, company_id: int) -> Dict[str, Any]:
    return serialize_company(await _load_company(db, company_id))


async def update_company(
    db: AsyncSession, company_id: int, updates: Dict[str, Any]
) -> Dict[str, Any]:
    """Merge provided fields into a company. A null name is ignored."""
    if updates.get("name", "") is None:
        updates = {k: v for k, v in updates.items() if k != "name"}

    async def work(session: AsyncSession) -> Company:
        company = await _load_company(session, company_id)
        for field, value in updates.items():
            setattr(company, field, value)
        await session.flush()
        return company

    company = await run_in_transaction(db, work)
    return serialize_company(company)


async def delete_company(db: AsyncSession, company_id: int, user_id: int) -> None:
    """
    Soft-delete a company.

    Membership resolution excludes deleted companies, so every tenant
    operation on it is refused from here on.
    """

    async def work(session: AsyncSession) -> None:
        company = await _load_company(session, company_id)
        company.deleted_at = now()
        await session.flush()

    await run_in_transaction(db, work)
    logger.info(f"Company {company_id} soft-deleted by user {user_id}")
    await log_audit_event(
        AuditAction.DELETE,
        ResourceType.COMPANY,
        resource_id=company_id,
        user_id=user_id,
        company_id=company_id,
    )
