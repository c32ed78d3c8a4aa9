"""FastAPI dependencies for dependency injection."""

from typing import Callable

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.middleware.authorization import Operation
from core.middleware.pipeline import AccessContext, AccessPipeline
from database.engine import get_db

__all__ = ["get_db", "get_pagination", "require_access"]


def require_access(operation: Operation) -> Callable:
    """
    Dependency factory running the access pipeline for an operation.

    The pipeline shares the request's database session with the route, and
    the company id (when the route has one) comes from the path.

    Usage:
        @router.patch("/{company_id}")
        async def update_company(
            ctx: MemberContext = Depends(require_access(Operations.COMPANY_UPDATE)),
        ):
            ...
    """

    async def dependency(
        request: Request,
        db: AsyncSession = Depends(get_db),
    ) -> AccessContext:
        pipeline: AccessPipeline = request.app.state.access_pipeline
        return await pipeline.run(
            db,
            operation,
            authorization=request.headers.get("Authorization"),
            company_id=request.path_params.get("company_id"),
        )

    dependency.__name__ = f"require_{operation.name.replace(':', '_')}"
    return dependency


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)
