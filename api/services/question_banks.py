"""Question bank service functions."""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ResourceNotFound
from core.security import AuditAction, ResourceType, log_audit_event
from core.utils.datetime import isoformat
from database.engine import run_in_transaction
from database.models.jobs import QuestionBank

logger = logging.getLogger(__name__)


def serialize_question_bank(bank: QuestionBank) -> Dict[str, Any]:
    return {
        "id": bank.id,
        "company_id": bank.company_id,
        "name": bank.name,
        "questions_json": bank.questions,
        "created_by": bank.created_by_id,
        "created_at": isoformat(bank.created_at),
        "updated_at": isoformat(bank.updated_at),
    }


async def _load_bank(db: AsyncSession, company_id: int, bank_id: int) -> QuestionBank:
    result = await db.execute(
        select(QuestionBank).where(
            QuestionBank.id == bank_id, QuestionBank.company_id == company_id
        )
    )
    bank = result.scalar_one_or_none()
    if bank is None:
        raise ResourceNotFound("Question bank not found")
    return bank


async def list_question_banks(db: AsyncSession, company_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(QuestionBank)
        .where(QuestionBank.company_id == company_id)
        .order_by(QuestionBank.created_at.desc(), QuestionBank.id.desc())
    )
    return [serialize_question_bank(bank) for bank in result.scalars().all()]


async def get_question_bank(
    db: AsyncSession, company_id: int, bank_id: int
) -> Dict[str, Any]:
    return serialize_question_bank(await _load_bank(db, company_id, bank_id))


async def create_question_bank(
    db: AsyncSession,
    company_id: int,
    user_id: int,
    name: str,
    questions: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Create a question bank.

    Args:
        db: Database session
        company_id: Owning company
        user_id: Creating member
        name: Bank name
        questions: Validated question dicts

    Returns:
        The stored bank
    """

    async def work(session: AsyncSession) -> QuestionBank:
        bank = QuestionBank(
            company_id=company_id,
            name=name,
            questions=questions,
            created_by_id=user_id,
        )
        session.add(bank)
        await session.flush()
        return bank

    bank = await run_in_transaction(db, work)
    await log_audit_event(
        AuditAction.CREATE,
        ResourceType.QUESTION_BANK,
        resource_id=bank.id,
        user_id=user_id,
        company_id=company_id,
    )
    return serialize_question_bank(bank)


async def update_question_bank(
    db: AsyncSession,
    company_id: int,
    bank_id: int,
    name: Optional[str] = None,
    questions: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Rename a bank or replace its questions.

    Postings created from this bank keep their own copy and are not touched.
    """

    async def work(session: AsyncSession) -> QuestionBank:
        bank = await _load_bank(session, company_id, bank_id)
        if name is not None:
            bank.name = name
        if questions is not None:
            bank.questions = questions
        await session.flush()
        return bank

    bank = await run_in_transaction(db, work)
    return serialize_question_bank(bank)


async def delete_question_bank(
    db: AsyncSession, company_id: int, bank_id: int, user_id: int
) -> None:
    async def work(session: AsyncSession) -> None:
        bank = await _load_bank(session, company_id, bank_id)
        await session.delete(bank)
        await session.flush()

    await run_in_transaction(db, work)
    logger.info(f"Question bank {bank_id} deleted from company {company_id}")
    await log_audit_event(
        AuditAction.DELETE,
        ResourceType.QUESTION_BANK,
        resource_id=bank_id,
        user_id=user_id,
        company_id=company_id,
    )
