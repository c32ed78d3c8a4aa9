"""Question bank endpoints."""

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_access
from api.schemas.jobs import QuestionBankCreate, QuestionBankUpdate
from api.services import question_banks as question_bank_service
from core.middleware.authorization import MemberContext, Operations

router = APIRouter(prefix="/companies/{company_id}/question-banks", tags=["question-banks"])


@router.get("", summary="List Question Banks")
async def list_question_banks(
    ctx: MemberContext = Depends(require_access(Operations.QUESTION_BANK_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await question_bank_service.list_question_banks(db, ctx.company_id)


@router.get("/{bank_id}", summary="Get Question Bank")
async def get_question_bank(
    bank_id: int = Path(..., description="Question bank ID"),
    ctx: MemberContext = Depends(require_access(Operations.QUESTION_BANK_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await question_bank_service.get_question_bank(db, ctx.company_id, bank_id)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Question Bank")
async def create_question_bank(
    body: QuestionBankCreate,
    ctx: MemberContext = Depends(require_access(Operations.QUESTION_BANK_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await question_bank_service.create_question_bank(
        db,
        ctx.company_id,
        ctx.user_id,
        body.name,
        [q.model_dump() for q in body.questions_json],
    )


@router.patch(
    "/{bank_id}",
    summary="Update Question Bank",
    description="Edit a bank. Jobs already created from it keep their own copy.",
)
async def update_question_bank(
    body: QuestionBankUpdate,
    bank_id: int = Path(..., description="Question bank ID"),
    ctx: MemberContext = Depends(require_access(Operations.QUESTION_BANK_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    questions = None
    if body.questions_json is not None:
        questions = [q.model_dump() for q in body.questions_json]
    return await question_bank_service.update_question_bank(
        db, ctx.company_id, bank_id, name=body.name, questions=questions
    )


@router.delete(
    "/{bank_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Question Bank",
)
async def delete_question_bank(
    bank_id: int = Path(..., description="Question bank ID"),
    ctx: MemberContext = Depends(require_access(Operations.QUESTION_BANK_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    await question_bank_service.delete_question_bank(
        db, ctx.company_id, bank_id, ctx.user_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
