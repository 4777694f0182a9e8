"""pm_market REST endpoints.

GET /markets               — list with cursor pagination
GET /markets/{market_id}   — full detail incl. probabilities and resolution
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: Literal["OPEN", "LOCKED", "RESOLVED", "SETTLED", "CANCELLED", "ALL"] | None = Query(
        None, description="Filter by status. Default: OPEN. Use ALL for no filter."
    ),
    category: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, status, category, cursor, limit)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)
